# Data factories for test data generation

from tests.support.factories.project_factory import (
    create_clip,
    create_project,
    fast_config,
)

__all__ = [
    "create_clip",
    "create_project",
    "fast_config",
]
