import hashlib
import importlib.util
from pathlib import Path

import contracting
import pytest
from contracting.client import ContractingClient
from contracting.compilation import whitelists
from contracting.stdlib.bridge.time import Datetime

PROJECT_ROOT = Path(__file__).resolve().parents[1]
COPROCESSOR_PATH = PROJECT_ROOT / "con_fhe_coprocessor.py"
CONTRACT_PATH = PROJECT_ROOT / "con_mining_challenge.py"
HELPER_PATH = PROJECT_ROOT / "client_helper.py"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)

MIN_INTERVAL = 10


def block_time(seconds):
    """Block time `seconds` after the test epoch."""
    return Datetime(2026, 1, 1, hour=seconds // 3600, minute=(seconds // 60) % 60, second=seconds % 60)


@pytest.fixture(scope="session")
def at():
    return block_time


@pytest.fixture(scope="session")
def min_interval():
    return MIN_INTERVAL


@pytest.fixture(scope="session", autouse=True)
def enable_sha3_and_whitelist():
    whitelists.ALLOWED_BUILTINS.update({"hashlib", "decimal"})

    if not hasattr(hashlib, "sha3"):
        def _sha3(data):
            if isinstance(data, str):
                data = data.encode("utf-8")
            return hashlib.sha3_256(data).hexdigest()

        setattr(hashlib, "sha3", _sha3)


@pytest.fixture(scope="session")
def helper_module():
    spec = importlib.util.spec_from_file_location("client_helper_tests", HELPER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def client():
    client = ContractingClient(signer="operator", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    return client


@pytest.fixture
def fhe(client):
    code = COPROCESSOR_PATH.read_text()
    client.submit(code, name="con_fhe_coprocessor", owner=None)
    return client.get_contract("con_fhe_coprocessor")


@pytest.fixture
def contract(client, fhe):
    code = CONTRACT_PATH.read_text()
    client.submit(
        code,
        name="con_mining_challenge",
        owner=None,
        constructor_args={"min_interval": MIN_INTERVAL},
    )
    return client.get_contract("con_mining_challenge")
