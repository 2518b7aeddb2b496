# usersvc/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles initial setup tasks such as creating default admin user on first startup.
"""
import os
import logging

from usersvc.core.errors import EmailExists
from usersvc.services.accounts import AccountService
from usersvc.services.credentials import ROLE_ADMIN, User

logger = logging.getLogger("uvicorn.error")


async def ensure_default_admin(accounts: AccountService) -> None:
    """
    If no admin exists in the database, create a default admin based on environment variables.
    Only takes effect under the following conditions:
      - Currently no user with role="admin"
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
    Environment variables:
      ADMIN_EMAIL      (default: "admin@example.com")
      ADMIN_FIRST_NAME (default: "Admin")
      ADMIN_LAST_NAME  (default: "User")
      ADMIN_PASSWORD   (required, otherwise won't create)
    """
    if await accounts.has_role(ROLE_ADMIN):
        return

    admin_password = os.getenv("ADMIN_PASSWORD")
    if not admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return

    candidate = User(
        email=os.getenv("ADMIN_EMAIL", "admin@example.com"),
        first_name=os.getenv("ADMIN_FIRST_NAME", "Admin"),
        last_name=os.getenv("ADMIN_LAST_NAME", "User"),
        password=admin_password,
        role=ROLE_ADMIN,
    )
    try:
        u = await accounts.register(candidate)
    except EmailExists:
        # A regular account already owns the address; never promote it silently
        logger.warning("[bootstrap] ADMIN_EMAIL %s is taken by a non-admin account -> skip.", candidate.email)
        return
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", u.email, u.id)
