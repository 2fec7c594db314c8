import logging
from typing import Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from scribe.config import AppConfig
from scribe.services.token_signer import JaasTokenSigner, JitsiUser, TokenSignerError


def create_jitsi_router(
    config: AppConfig, signer_factory: Optional[Callable[[], JaasTokenSigner]] = None
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("scribe.api.jitsi")

    def _default_factory() -> JaasTokenSigner:
        missing = config.jaas.missing_fields()
        if missing:
            raise TokenSignerError(
                f"Missing required configuration: {', '.join(missing)}"
            )
        return JaasTokenSigner(
            app_id=config.jaas.app_id,
            key_id=config.jaas.key_id,
            private_key_pem=config.jaas.private_key,
            ttl_seconds=config.jaas.token_ttl_seconds,
        )

    make_signer = signer_factory or _default_factory

    @router.get("/api/jitsi-token")
    def jitsi_token(
        request: Request,
        room: str = "default-room",
        user_id: str = "user123",
        user_name: str = "Your User",
        user_email: str = "user@example.com",
        user_moderator: str = "true",
    ) -> JSONResponse:
        origin = request.headers.get("origin")
        if origin and origin not in config.allowed_origins:
            logger.warning("Token request from disallowed origin: %s", origin)
            return JSONResponse(
                {"error": "Origin not allowed", "allowed_origins": config.allowed_origins},
                status_code=403,
            )
        user = JitsiUser(id=user_id, name=user_name, email=user_email, moderator=user_moderator)
        try:
            token = make_signer().sign(room, user)
        except TokenSignerError as exc:
            logger.error("Token signing failed: %s", exc)
            return JSONResponse({"error": str(exc)}, status_code=500)
        return JSONResponse({"token": token})

    return router
