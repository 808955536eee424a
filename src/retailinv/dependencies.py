"""Repository factory, shared app resources and FastAPI provider dependencies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import cast

from fastapi import Depends, HTTPException, Request, status

from retailinv.config import InventoryConfig
from retailinv.inventory_service import InventoryService
from retailinv.repositories.base import InventoryRepository
from retailinv.repositories.csv_file import CsvInventoryRepository
from retailinv.repositories.memory import InMemoryInventoryRepository
from retailinv.repositories.sql import SqlInventoryRepository

logger = logging.getLogger(__name__)


def create_repository(config: InventoryConfig) -> InventoryRepository:
    """Build the backend selected by ``config.backend``."""
    if config.backend == "csv":
        logger.info("Using csv backend in %s", config.data_dir)
        return CsvInventoryRepository.from_directory(
            config.data_dir,
            stores_file=config.stores_file,
            products_file=config.products_file,
        )
    if config.backend == "sql":
        logger.info("Using sql backend")
        return SqlInventoryRepository.from_url(config.database_url, echo=config.sql_echo)
    if config.backend == "memory":
        logger.info("Using in-memory backend")
        return InMemoryInventoryRepository()
    raise ValueError(f"Unknown backend: {config.backend}")


def build_service(config: InventoryConfig) -> InventoryService:
    """Wire a service around the configured repository."""
    return InventoryService(create_repository(config))


@dataclass
class AppResources:
    """App-scoped resources initialized during FastAPI lifespan."""

    config: InventoryConfig
    service: InventoryService


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "retailinv_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> InventoryConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_inventory_service(
    resources: AppResources = Depends(get_app_resources),
) -> InventoryService:
    """Get app-scoped inventory service."""
    return resources.service
