"""Abstract interfaces for the collaborators the screening workflow consumes.

These ABCs define the contract that concrete implementations must fulfil.
The SDK ships one implementation of each where it owns the concern
(:class:`~devscreen_rules.llm.GroqCompletionClient`,
:class:`~devscreen_rules.payments.LedgerPaymentGateway`); the analysis
dispatcher is provided by the hosting process.

Typical integration flow::

    pipeline = ScreeningPipeline(
        catalog,
        settings=load_screening_settings(),
        analyzer=RiskAnalyzer(build_completion_client(load_llm_settings())),
        payments=LedgerPaymentGateway(),
    )
    outcome = await pipeline.complete_session(
        db, session_id=sid, user_id=uid, family_id=fid,
        dispatcher=MyDispatcher(),
    )
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession


class CompletionClient(ABC):
    """Interface for a structured-JSON chat completion endpoint."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model id recorded as analysis provenance."""
        ...

    @property
    @abstractmethod
    def provider(self) -> str:
        """Provider name recorded as analysis provenance."""
        ...

    @abstractmethod
    async def complete_json(self, *, system: str, user: str) -> dict[str, Any]:
        """Send one system + user exchange and return the parsed JSON object.

        Raises
        ------
        UpstreamError
            On transport failure, non-success status, empty content or
            content that is not a JSON object.
        """
        ...


class PaymentGateway(ABC):
    """Interface for the payment subsystem that owns payment intents."""

    @abstractmethod
    async def create_intent(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        family_id: str,
        clinic_id: str,
        amount: int,
        payment_method: str,
        screening_id: uuid.UUID | None = None,
    ) -> str:
        """Create a pending payment intent and return its id.

        Raises
        ------
        UpstreamError
            If the intent could not be created.  Implementations must leave
            the caller's transaction usable.
        """
        ...


class AnalysisDispatcher(ABC):
    """Hands analysis generation to a background worker.

    ``dispatch`` must return immediately; completion latency never depends
    on analysis latency.  The worker is responsible for retries and for
    recording ``READY`` / ``FAILED`` on the session.
    """

    @abstractmethod
    def dispatch(self, session_id: str) -> None:
        ...
