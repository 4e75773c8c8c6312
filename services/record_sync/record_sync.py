"""Record sync runner entry point.

Re-derives the checklist of one or more records from the catalog and the
current record fields, and persists it (required/provided flags, completion
flag, dossier state and missing documents summary).

Usage:
    python -m services.record_sync.record_sync <record_id> [<record_id> ...]
"""

import argparse
import asyncio

from shared.catalog.CatalogLoader import CatalogError, CatalogLoader
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.clients.store.models.StoreErrors import StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.sync import SaveResult, SaveStatus
from services.checklist.ChecklistSessionManager import ChecklistSessionManager


async def sync_records(manager: ChecklistSessionManager, record_ids: list[str]) -> dict[str, SaveResult]:
    """Fetches and saves each record independently; a failing record does not stop the others.

    Args:
        manager (ChecklistSessionManager): The session manager.
        record_ids (list[str]): The records to process.

    Returns:
        dict[str, SaveResult]: The save result per record id.
    """
    logger = manager.logging
    results: dict[str, SaveResult] = {}
    for record_id in record_ids:
        session = manager.get_session(record_id)
        try:
            await session.fetch_all()
        except StoreError as e:
            logger.error("Record %s could not be fetched: %s", record_id, e)
            results[record_id] = SaveResult(status=SaveStatus.ERROR, message=str(e), error_kind=manager.error_state.classify(e))
            manager.drop_session(record_id)
            continue

        result = await session.save()
        results[record_id] = result
        color = "green" if result.is_success else ("yellow" if result.status == SaveStatus.PARTIAL_SUCCESS else "red")
        logger.info(
            "Record %s: %s, state '%s', %d missing document(s). %s",
            record_id, result.status.value, session.dossier_state.value, len(session.missing_documents), result.message,
            color=color,
        )
        manager.drop_session(record_id)
    return results


async def main(record_ids: list[str]) -> int:
    """Run the record sync for the given records.

    Returns:
        int: Process exit code, 1 if any record ended in error.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    try:
        catalog = CatalogLoader(helper_config=config).load()
    except CatalogError as e:
        logger.error("Catalog could not be loaded: %s. Aborting.", e)
        return 1

    store_client = StoreClientManager(helper_config=config).get_client()
    try:
        await store_client.boot()
        manager = ChecklistSessionManager(helper_config=config, catalog=catalog, store_client=store_client)
        manager.router.audit()
        results = await sync_records(manager, record_ids)
        await manager.close()
    finally:
        await store_client.close()

    failed = [record_id for record_id, result in results.items() if result.status == SaveStatus.ERROR]
    if failed:
        logger.error("%d of %d record(s) failed: %s", len(failed), len(results), ", ".join(failed))
        return 1
    logger.info("%d record(s) synchronised.", len(results), color="green")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Re-derive and persist the document checklist of records.")
    parser.add_argument("record_ids", nargs="+", help="Record ids (composite ids like 0-123-456 are accepted)")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.record_ids)))
