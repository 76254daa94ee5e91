"""Payment settlement callback.

Called by the payment subsystem when an intent is settled.  Requires the
``X-Webhook-Secret`` header matching ``PAYMENT_WEBHOOK_SECRET``.
Settlement is idempotent: a repeated callback returns ``already_settled``.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_rules.actions import ScreeningActions

from devscreen_server.dependencies import get_actions, get_db, require_webhook_secret
from devscreen_server.errors import envelope_response

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    dependencies=[Depends(require_webhook_secret)],
)


@router.post("/{intent_id}/settle")
async def settle_payment(
    intent_id: str,
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Mark an intent settled and advance its session to PAID."""
    result = await actions.settle_payment(db, intent_id=intent_id)
    return envelope_response(result)
