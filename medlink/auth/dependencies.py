import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from medlink.auth import jwt_handler
from medlink.database import SessionLocal
from medlink.models.professional import Professional
from medlink.scheduling.errors import SchedulingError, as_http_exception
from medlink.scheduling.store import SchedulingStore

security = HTTPBearer()


def get_current_professional(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Professional:
    """Resolve the bearer token's subject to a row of the professional directory."""
    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    professional_id = payload["sub"]
    if not isinstance(professional_id, str) or not professional_id.strip():
        raise HTTPException(status_code=401, detail="Invalid token subject")

    with SessionLocal() as db:
        try:
            professional = SchedulingStore(db).get_professional(professional_id)
        except SchedulingError as exc:
            raise as_http_exception(exc) from exc

    if professional is None:
        raise HTTPException(status_code=401, detail="Professional not found")
    return professional
