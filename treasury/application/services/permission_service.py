"""Permission catalog service: validated registration and idempotent seeding."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from treasury.application.dtos.permission import PermissionDefinition, PermissionResult
from treasury.application.interfaces.repositories import IPermissionRepository
from treasury.domain.exceptions import DuplicateCodeException, ValidationException
from treasury.domain.value_objects import PermissionCode

logger = logging.getLogger(__name__)


class PermissionService:
    """Register catalog entries. The catalog is global and append-only."""

    def __init__(self, permission_repo: IPermissionRepository) -> None:
        self._repo = permission_repo

    @staticmethod
    def _validate(definition: PermissionDefinition) -> None:
        try:
            PermissionCode(definition.code)
        except ValueError as e:
            raise ValidationException(str(e), field="code") from e
        if not definition.name:
            raise ValidationException("Permission name is required", field="name")

    async def create_permission(self, definition: PermissionDefinition) -> PermissionResult:
        """Register a new code. Raises DuplicateCodeException if it already exists."""
        self._validate(definition)
        existing = await self._repo.get_by_code(definition.code)
        if existing:
            raise DuplicateCodeException("permission", definition.code)
        result, _ = await self._repo.ensure_permission(definition)
        return result

    async def ensure_catalog(self, definitions: Iterable[PermissionDefinition]) -> int:
        """Upsert-by-code every definition; return how many were newly created."""
        created_count = 0
        for definition in definitions:
            self._validate(definition)
            _, created = await self._repo.ensure_permission(definition)
            if created:
                created_count += 1
                logger.info("Created permission: %s", definition.code)
        return created_count
