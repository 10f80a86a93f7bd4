"""Modèles de base du domaine, indépendants de l'API et du stockage.

Objectif du module
------------------
- Définir la forme commune des enregistrements persistés (`Record`).
- Définir les mises à jour partielles typées (`PartialUpdate`): seuls les champs explicitement
  fournis sont fusionnés, les horodatages restent la responsabilité du stockage.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

R = TypeVar("R", bound="Record")


def utcnow() -> datetime:
    """Horodatage courant en UTC (timezone-aware)."""
    return datetime.now(UTC)


class Record(BaseModel):
    """Enregistrement persisté: identifiant et horodatages assignés par le stockage."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=False)

    id: str
    created_at: datetime

    @field_validator("*", mode="after")
    @classmethod
    def _aware_datetimes(cls, value: Any) -> Any:
        # SQLite rend des datetimes naïfs: ils sont en UTC.
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def merged(self: R, changes: dict[str, Any], **stamps: Any) -> R:
        """Retourne une copie validée avec `changes` fusionnés (et horodatages fournis)."""
        return type(self).model_validate({**self.model_dump(), **changes, **stamps})


class PartialUpdate(BaseModel):
    """Mise à jour partielle: les champs non fournis ne sont pas modifiés."""

    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict[str, Any]:
        """Champs explicitement fournis par l'appelant."""
        return self.model_dump(exclude_unset=True)


class CreateModel(BaseModel):
    """Charge utile de création: champs fournis par l'appelant, sans id ni horodatage."""

    model_config = ConfigDict(extra="forbid")
