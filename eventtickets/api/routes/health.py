from fastapi import APIRouter, Depends

from eventtickets.api.deps import get_services
from eventtickets.services.container import Services

router = APIRouter()


@router.get("")
@router.get("/")
def health(services: Services = Depends(get_services)):
    return {
        "status": "ok",
        "database": services.sessions is not None,
        "email": services.settings.smtp_configured,
        "payments": bool(services.settings.stripe_secret_key),
    }
