"""
===============================================================================
TARJETA CRC — identity/credentials.py
===============================================================================

Módulo:
    Verificación de credenciales (JWT bearer)

Responsabilidades:
    - Extraer el token desde `Authorization: Bearer <token>`.
    - Verificar firma y expiración (PyJWT) y devolver el subject.
      Un token sin `exp` es inválido: no hay credenciales eternas.
    - Traducir fallas a la taxonomía: Unauthenticated / InvalidCredential /
      ExpiredCredential.
    - Helper para emitir tokens en tests y desarrollo local.

Colaboradores:
    - crosscutting.config.get_settings: secreto, algoritmo, leeway.
    - identity.resolver.IdentityResolver: consume VerifiedCredential.
    - identity.errors

Decisiones:
    - Subject: claim estándar `sub`; si falta, se acepta `userId` (formato
      de tokens emitidos por versiones anteriores del backend).
    - No se emiten tokens productivos acá: la emisión/refresh vive en otro
      servicio. create_access_token existe solo para tests/dev.
    - Nunca loguear el token.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import jwt

from ..crosscutting.logger import logger
from .errors import ExpiredCredential, InvalidCredential, Unauthenticated

CLAIM_SUB = "sub"
CLAIM_LEGACY_SUB = "userId"
CLAIM_EXP = "exp"
CLAIM_IAT = "iat"


@dataclass(frozen=True, slots=True)
class VerifiedCredential:
    """Resultado de una verificación exitosa."""

    subject_id: str
    expires_at: datetime


class CredentialVerifier(Protocol):
    def verify(self, token: str | None) -> VerifiedCredential: ...


class JwtCredentialVerifier:
    """Verifica JWT firmados con secreto compartido."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        leeway_seconds: int = 0,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway_seconds

    def verify(self, token: str | None) -> VerifiedCredential:
        if token is None or not token.strip():
            raise Unauthenticated("Request sin token")

        try:
            payload = jwt.decode(
                token.strip(),
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": [CLAIM_EXP]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredCredential("Token expirado") from exc
        except jwt.InvalidTokenError as exc:
            logger.info(
                "token rechazado",
                extra={"error_type": type(exc).__name__},
            )
            raise InvalidCredential(f"Token inválido: {type(exc).__name__}") from exc

        subject = payload.get(CLAIM_SUB) or payload.get(CLAIM_LEGACY_SUB)
        if not subject:
            raise InvalidCredential("Token sin subject")

        return VerifiedCredential(
            subject_id=str(subject), expires_at=_expires_at(payload)
        )


def _expires_at(payload: dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(int(payload[CLAIM_EXP]), tz=timezone.utc)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extrae token desde `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def create_access_token(
    subject_id: str,
    *,
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(minutes=15),
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Emite un JWT firmado (solo tests / desarrollo local).

    expires_in negativo produce un token ya expirado.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        CLAIM_SUB: str(subject_id),
        CLAIM_IAT: int(now.timestamp()),
        CLAIM_EXP: int((now + expires_in).timestamp()),
        **(extra_claims or {}),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)
