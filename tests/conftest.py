import logging

import pytest

from shared.catalog.CatalogLoader import CatalogLoader
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.catalog import Catalog
from tests.support import MARIAGE, RAW_DOCUMENTS, RAW_PROPERTIES, RAW_ROUTING, RAW_VIEWS, FakeStoreClient


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("checklist_bridge.tests")))


@pytest.fixture
def catalog(helper_config) -> Catalog:
    return CatalogLoader(helper_config=helper_config).build(RAW_DOCUMENTS, RAW_VIEWS, RAW_PROPERTIES, RAW_ROUTING)


@pytest.fixture
def store() -> FakeStoreClient:
    return FakeStoreClient(records={
        "123": {"sous_categorie": MARIAGE, "marie_etranger": "Oui"},
    })
