import asyncio
import json

import pytest

from storage.case_store import CaseStore, case_key, encode_json, INDEX_KEY
from storage.contract import ContractGateway, InMemoryLedger
from storage.models import CaseDraft
from storage.wallet import DemoWallet, WalletSession

ACCOUNT = "0xabc0000000000000000000000000000000000001"
NOW = 1_700_000_000.0


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def wallet():
    return DemoWallet(accounts=[ACCOUNT])


@pytest.fixture
def session(wallet):
    # equivalent to a completed WalletSession.connect(wallet)
    s = WalletSession()
    s.provider = wallet
    s.account = ACCOUNT
    return s


@pytest.fixture
def gateway(ledger, session):
    return ContractGateway(ledger, session)


@pytest.fixture
def store(gateway):
    return CaseStore(gateway, clock=lambda: NOW)


@pytest.fixture
def draft():
    return CaseDraft(jurisdiction="Federal", crime_type="Drug", outcome="Dismissed")


def put_record(ledger, case_id, **fields):
    """Write a raw case record plus its index entry straight to *ledger*."""
    body = {
        "data": "FHE-e30=",
        "timestamp": 100,
        "jurisdiction": "State",
        "crimeType": "Property",
        "outcome": "Probation",
        "fheAnalysis": "Pending FHE Analysis",
    }
    body.update(fields)
    ledger.entries[case_key(case_id)] = encode_json(body)
    ids = []
    if INDEX_KEY in ledger.entries:
        ids = json.loads(ledger.entries[INDEX_KEY])
    ids.append(case_id)
    ledger.entries[INDEX_KEY] = encode_json(ids)


async def spin_until(predicate, limit=200):
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")
