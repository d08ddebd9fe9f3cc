import pytest

from sfms.desk import FeesDesk
from sfms.fees import FeeScheduleService, seed_payment_plans
from sfms.ledger import ReceiptLedger
from sfms.logger import ErrorLogger
from sfms.settings_store import SettingsStore
from sfms.storage import ExcelStore


@pytest.fixture
def store(tmp_path):
    s = ExcelStore(tmp_path / "school_data.xlsx")
    s.ensure_workbook()
    return s


@pytest.fixture
def seeded_store(store):
    seed_payment_plans(store)
    return store


@pytest.fixture
def fees(seeded_store):
    return FeeScheduleService(seeded_store)


@pytest.fixture
def ledger(seeded_store):
    return ReceiptLedger(seeded_store)


@pytest.fixture
def desk(tmp_path):
    return FeesDesk(
        store=ExcelStore(tmp_path / "school_data.xlsx"),
        settings_store=SettingsStore(tmp_path / "settings.json"),
        err_logger=ErrorLogger(tmp_path / "error_log.txt"),
    )
