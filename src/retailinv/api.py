"""FastAPI application exposing the inventory operations."""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from retailinv.config import InventoryConfig, configure_logging, get_config
from retailinv.dependencies import (
    AppResources,
    build_service,
    get_app_config,
    get_inventory_service,
)
from retailinv.exceptions import InventoryError, NotFoundError, UnknownStoreError
from retailinv.inventory_service import InventoryService
from retailinv.models import (
    BatchRequest,
    DeliveryRequest,
    Product,
    PurchaseResult,
    Store,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(resources: Optional[AppResources] = None) -> FastAPI:
    """Create the API app; resources default to the global configuration."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "retailinv_resources", None) is None:
            config = get_config()
            app.state.retailinv_resources = AppResources(
                config=config, service=build_service(config)
            )
        yield

    app = FastAPI(
        title="Retail Inventory Service",
        description="Stores, stock deliveries, cheapest-store search and atomic purchases",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.retailinv_resources = resources

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
        """Map inventory errors to stable API error payload."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.get("/health")
    async def health_check(
        config: InventoryConfig = Depends(get_app_config),
    ) -> Dict[str, Any]:
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "service": "retail-inventory",
            "version": API_VERSION,
            "backend": config.backend,
        }

    @app.get("/stores", response_model=List[Store])
    async def list_stores(
        service: InventoryService = Depends(get_inventory_service),
    ) -> List[Store]:
        return await run_in_threadpool(service.list_stores)

    @app.post("/stores", response_model=Store, status_code=status.HTTP_201_CREATED)
    async def create_store(
        store: Store,
        service: InventoryService = Depends(get_inventory_service),
    ) -> Store:
        return await run_in_threadpool(service.create_store, store)

    @app.get("/stores/{code}", response_model=Store)
    async def get_store(
        code: int,
        service: InventoryService = Depends(get_inventory_service),
    ) -> Store:
        store = await run_in_threadpool(service.get_store, code)
        if store is None:
            raise UnknownStoreError(code)
        return store

    @app.get("/products", response_model=List[Product])
    async def list_products(
        store_code: Optional[int] = None,
        service: InventoryService = Depends(get_inventory_service),
    ) -> List[Product]:
        return await run_in_threadpool(service.list_products, store_code)

    @app.post("/products", response_model=Product, status_code=status.HTTP_201_CREATED)
    async def create_product(
        product: Product,
        service: InventoryService = Depends(get_inventory_service),
    ) -> Product:
        return await run_in_threadpool(service.create_product, product)

    @app.post("/stores/{code}/deliveries", response_model=List[Product])
    async def deliver_goods(
        code: int,
        payload: DeliveryRequest,
        service: InventoryService = Depends(get_inventory_service),
    ) -> List[Product]:
        """Merge a delivery into the store as one unit."""
        products = [line.to_product(code) for line in payload.products]
        return await run_in_threadpool(service.import_goods_to_store, code, products)

    @app.get("/products/{name}/cheapest-store", response_model=Store)
    async def cheapest_store_for_product(
        name: str,
        service: InventoryService = Depends(get_inventory_service),
    ) -> Store:
        store = await run_in_threadpool(service.find_cheapest_store_for_product, name)
        if store is None:
            raise NotFoundError(
                f"No store found selling {name}.", details={"product": name}
            )
        return store

    @app.get("/stores/{code}/affordable", response_model=List[Product])
    async def affordable_products(
        code: int,
        budget: Decimal = Query(..., ge=0),
        service: InventoryService = Depends(get_inventory_service),
    ) -> List[Product]:
        """Products whose unit price is within budget."""
        return await run_in_threadpool(
            service.get_affordable_products_in_store, code, budget
        )

    @app.post(
        "/stores/{code}/purchases",
        response_model=PurchaseResult,
        responses={409: {"description": "Insufficient stock, nothing purchased"}},
    )
    async def purchase_goods(
        code: int,
        payload: BatchRequest,
        service: InventoryService = Depends(get_inventory_service),
    ) -> PurchaseResult:
        """Buy every item or nothing."""
        result = await run_in_threadpool(service.purchase_goods, code, payload.items)
        return result.raise_for_status()

    @app.post("/batches/cheapest-store", response_model=Store)
    async def cheapest_store_for_batch(
        payload: BatchRequest,
        service: InventoryService = Depends(get_inventory_service),
    ) -> Store:
        store = await run_in_threadpool(
            service.find_cheapest_store_for_batch, payload.items
        )
        if store is None:
            raise NotFoundError(
                "No store can fulfil the whole batch.", details={"items": payload.items}
            )
        return store

    return app


app = create_app()


def main() -> None:
    """Run API server."""
    import uvicorn

    config = get_config()
    configure_logging(config)
    uvicorn.run(
        "retailinv.api:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
