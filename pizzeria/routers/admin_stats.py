# pizzeria/routers/admin_stats.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from pizzeria.core.auth import require_admin
from pizzeria.core.dependencies import get_order_service
from pizzeria.database import get_session
from pizzeria.schemas.stats import AdminDashboard
from pizzeria.services.order_service import OrderService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get(
    "/dashboard",
    response_model=AdminDashboard,
    dependencies=[Depends(require_admin)],
)
def get_admin_dashboard(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Alerts for orders stuck in a status, plus counts and revenue per status.

    Only accessible to users with role='admin'.
    """
    return service.get_dashboard(session)
