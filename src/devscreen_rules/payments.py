"""LedgerPaymentGateway — records payment intents in the local ledger table.

Settlement is driven by the payment subsystem's callback and handled by
:meth:`devscreen_rules.pipeline.ScreeningPipeline.settle_payment`.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.repository import PaymentIntentRepository

from devscreen_rules.errors import UpstreamError
from devscreen_rules.interfaces import PaymentGateway

logger = logging.getLogger(__name__)


class LedgerPaymentGateway(PaymentGateway):
    """Creates PENDING rows in ``payment_intents``.

    The insert runs inside a SAVEPOINT (see the repository), so a failure
    is reported as :class:`UpstreamError` without aborting the caller's
    transaction.
    """

    def __init__(self) -> None:
        self._repo = PaymentIntentRepository()

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
        try:
            intent = await self._repo.create_intent(
                db,
                user_id=user_id,
                family_id=family_id,
                clinic_id=clinic_id,
                amount=amount,
                payment_method=payment_method,
                screening_id=screening_id,
            )
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Failed to create payment intent: {exc}") from exc

        logger.info(
            "Payment intent created: intent_id=%s, family_id=%s, amount=%d",
            intent.intent_id, family_id, amount,
        )
        return str(intent.intent_id)
