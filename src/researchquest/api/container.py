"""Process-wide store and adapter registries shared by the route modules."""

from __future__ import annotations

from functools import lru_cache

from researchquest.application.services.phase_controller import PhaseProgressionController
from researchquest.infrastructure.adapters import build_platform_registry, build_resource_registry
from researchquest.infrastructure.stores.entity_store import SqlAlchemyEntityStore


@lru_cache(maxsize=1)
def get_store() -> SqlAlchemyEntityStore:
    return SqlAlchemyEntityStore()


@lru_cache(maxsize=1)
def get_platform_adapters():
    return build_platform_registry()


@lru_cache(maxsize=1)
def get_resource_adapters():
    return build_resource_registry()


@lru_cache(maxsize=1)
def get_phase_controller() -> PhaseProgressionController:
    # one controller, so topic confirmation and phase completion share a gate
    return PhaseProgressionController(get_store())
