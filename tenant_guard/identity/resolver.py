"""
===============================================================================
TARJETA CRC — identity/resolver.py
===============================================================================

Módulo:
    Identity Resolver (token -> Principal)

Responsabilidades:
    - Verificar la credencial (delegado a CredentialVerifier).
    - Buscar el usuario ACTIVO con su rol (UserRoleLookup).
    - Rechazar subjects inexistentes/inactivos sin revelar cuál de los dos fue.

Colaboradores:
    - identity.credentials.CredentialVerifier
    - domain.repositories.UserRoleLookup
    - identity.errors.InactiveOrUnknownPrincipal

Notas:
    - Si la verificación falla no se hace ningún lookup.
    - Un subject que no es UUID se trata como usuario desconocido.
    - Sin cache: cada request vuelve a resolver el rol.
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from ..crosscutting.logger import logger
from ..domain.repositories import UserRoleLookup
from .credentials import CredentialVerifier
from .errors import InactiveOrUnknownPrincipal
from .principal import Principal


class IdentityResolver:
    def __init__(self, verifier: CredentialVerifier, users: UserRoleLookup):
        self._verifier = verifier
        self._users = users

    def resolve(self, token: str | None) -> Principal:
        credential = self._verifier.verify(token)

        try:
            user_id = UUID(credential.subject_id)
        except ValueError as exc:
            logger.warning("subject de token no es UUID")
            raise InactiveOrUnknownPrincipal("Subject con formato inválido") from exc

        principal = self._users.find_active_user_with_role(user_id)
        if principal is None:
            # R: en logs sí distinguimos el motivo; al cliente le llega "Token inválido."
            logger.warning(
                "usuario inexistente o inactivo",
                extra={"user_id": str(user_id)},
            )
            raise InactiveOrUnknownPrincipal("Usuario inexistente o inactivo")

        return principal
