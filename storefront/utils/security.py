from fastapi import Request, HTTPException, Depends
from typing import Optional, Dict, Any
import logging

import storefront.infra.supabase_client as supabase_client
from storefront.config import ADMIN_EMAILS

COOKIE_NAME = "sb_access"

logger = logging.getLogger(__name__)

def determine_role(email: Optional[str], metadata: Dict[str, Any] | None) -> str:
    """
    Rôle applicatif:
    - "admin" si user_metadata.role == "admin" ou email présent dans ADMIN_EMAILS
    - "user" sinon
    """
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    if email and email.lower() in ADMIN_EMAILS:
        return "admin"
    return "user"

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """
    Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    retourne {id, email, name, metadata, role, token}.
    """
    res = supabase_client.get_supabase().auth.get_user(access_token)
    raw = getattr(res, "user", None)
    if raw is None:
        return {}
    metadata = getattr(raw, "user_metadata", None) or {}
    email = getattr(raw, "email", None)
    return {
        "id": getattr(raw, "id", None),
        "email": email,
        "name": metadata.get("full_name") or metadata.get("name"),
        "metadata": metadata,
        "role": determine_role(email, metadata),
        "token": access_token,
    }

def get_current_user(request: Request) -> Dict[str, Any]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)

    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        user = get_user_from_token(token)
        if not user.get("id"):
            raise HTTPException(status_code=401, detail="Session expired, please sign in again")
        return user
    except HTTPException:
        raise
    except Exception:
        logger.exception("security.get_current_user failed")
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return user
