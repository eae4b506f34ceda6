from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from eventtickets.core.security import decode_access_token
from eventtickets.services.container import Services
from eventtickets.services.fulfillment import FulfillmentService

bearer_scheme = HTTPBearer(auto_error=False)

def get_services(request: Request) -> Services:
    return request.app.state.services

def get_fulfillment(services: Services = Depends(get_services)) -> FulfillmentService:
    return services.fulfillment

def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> str:
    """Return the user id (JWT subject) issued by the identity provider."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials, services.settings.secret_key)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return str(sub)
