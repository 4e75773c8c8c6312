"""FastAPI application entry point for the dossier checklist bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.catalog.CatalogLoader import CatalogLoader
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.StoreClientManager import StoreClientManager
from services.checklist.ChecklistSessionManager import ChecklistSessionManager
from server.routers.ChecklistRouter import router as checklist_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    catalog = CatalogLoader(helper_config=app.state.helper_config).load()
    store_client = StoreClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting store client...")
    await store_client.boot()
    logging.info("Store client '%s' booted.", store_client.get_engine_name())

    app.state.catalog = catalog
    app.state.store_client = store_client
    app.state.session_manager = ChecklistSessionManager(
        helper_config=app.state.helper_config,
        catalog=catalog,
        store_client=store_client,
    )
    app.state.session_manager.router.audit()

    await check_connection(store_client)

    # while the app is running...
    yield

    # when the app shuts down, flush pending syncs and close the client
    logging.info("Shutting down, flushing pending syncs...")
    await app.state.session_manager.close()
    await store_client.close()
    logging.info("Store client closed.")


app = FastAPI(
    title="checklist_bridge",
    description=(
        "Document checklist engine for legal dossiers stored in a CRM (e.g. HubSpot). "
        "Derives which documents are required from the record fields, tracks which are provided, "
        "and writes the completion state back to the record."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checklist_router)


async def check_connection(store_client: StoreClientInterface) -> None:
    """Check connectivity to the record store on startup.

    Failures are non-fatal: the server stays up and every request reports the
    store error, so a missing credential can be fixed without a restart loop.
    """
    try:
        result = await store_client.do_healthcheck()
    except Exception as e:
        logging.warning("Store client '%s' is not usable: %s", store_client.get_engine_name(), e)
        return
    if not result.is_success:
        logging.warning(
            "Store client '%s' is not reachable (status %d). Checklists cannot be loaded.",
            store_client.get_engine_name(),
            result.status_code,
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting checklist_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
