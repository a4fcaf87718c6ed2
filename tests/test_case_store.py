import asyncio
import json

import pytest

from conftest import NOW, put_record, spin_until
from storage.case_store import (
    INDEX_KEY,
    CaseStore,
    case_key,
    decode_index,
    encode_json,
    generate_case_id,
)
from storage.contract import ContractGateway, InMemoryLedger
from storage.crypto import Base64Codec
from storage.errors import (
    DecodeError,
    RecordNotFound,
    RemoteFailure,
    SigningUnavailable,
    UserRejected,
)
from storage.models import PENDING_ANALYSIS, AnalysisState, CaseDraft, CaseRecord
from storage.wallet import WalletSession


# ---------------------------------------------------------------------------
# load_all
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_load_all_empty_ledger(store):
    assert await store.load_all() == []


@pytest.mark.asyncio
async def test_load_all_unavailable_contract_returns_nothing(store, ledger):
    put_record(ledger, "1-a")
    ledger.available = False
    assert await store.load_all() == []


@pytest.mark.asyncio
async def test_load_all_sorts_newest_first(store, ledger):
    put_record(ledger, "a", timestamp=100)
    put_record(ledger, "b", timestamp=300)
    put_record(ledger, "c", timestamp=200)

    cases = await store.load_all()
    assert [c.timestamp for c in cases] == [300, 200, 100]
    assert [c.id for c in cases] == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_load_all_skips_malformed_records(store, ledger):
    put_record(ledger, "good-1", timestamp=10)
    put_record(ledger, "bad-json")
    ledger.entries[case_key("bad-json")] = b"{not json"
    put_record(ledger, "bad-shape")
    ledger.entries[case_key("bad-shape")] = b'["a list"]'
    put_record(ledger, "bad-utf8")
    ledger.entries[case_key("bad-utf8")] = b"\xff\xfe"
    put_record(ledger, "good-2", timestamp=20)

    cases = await store.load_all()
    assert [c.id for c in cases] == ["good-2", "good-1"]


@pytest.mark.asyncio
async def test_load_all_skips_listed_ids_without_record(store, ledger):
    put_record(ledger, "kept")
    ledger.entries[INDEX_KEY] = encode_json(["kept", "ghost"])

    cases = await store.load_all()
    assert [c.id for c in cases] == ["kept"]


@pytest.mark.asyncio
async def test_load_all_malformed_index_is_empty(store, ledger):
    put_record(ledger, "x")
    ledger.entries[INDEX_KEY] = b'{"not": "a list"}'
    assert await store.load_all() == []


DEEPLY_NESTED = b"[" * 100_000 + b"]" * 100_000


@pytest.mark.asyncio
async def test_load_all_skips_deeply_nested_record(store, ledger):
    put_record(ledger, "good", timestamp=100)
    put_record(ledger, "deep")
    ledger.entries[case_key("deep")] = DEEPLY_NESTED

    cases = await store.load_all()
    assert [c.id for c in cases] == ["good"]


@pytest.mark.asyncio
async def test_load_all_deeply_nested_index_is_empty(store, ledger):
    put_record(ledger, "good")
    ledger.entries[INDEX_KEY] = DEEPLY_NESTED
    assert await store.load_all() == []


def test_decode_index_rejects_deep_nesting():
    with pytest.raises(DecodeError):
        decode_index(DEEPLY_NESTED)


@pytest.mark.asyncio
async def test_load_all_missing_analysis_reads_as_pending(store, ledger):
    ledger.entries[case_key("old")] = encode_json(
        {"data": "FHE-e30=", "timestamp": 5, "jurisdiction": "County", "crimeType": "Other", "outcome": "Fine"}
    )
    ledger.entries[INDEX_KEY] = encode_json(["old"])

    (case,) = await store.load_all()
    assert case.fhe_analysis == PENDING_ANALYSIS
    assert case.analysis_state == AnalysisState.pending


class _FlakyLedger(InMemoryLedger):
    def __init__(self, broken):
        super().__init__()
        self.broken = broken

    async def get_data(self, key):
        if key in self.broken:
            raise ConnectionError(f"node timeout reading {key}")
        return await super().get_data(key)


@pytest.mark.asyncio
async def test_load_all_continues_past_read_errors(session):
    ledger = _FlakyLedger({case_key("b")})
    put_record(ledger, "a", timestamp=1)
    put_record(ledger, "b", timestamp=2)
    put_record(ledger, "c", timestamp=3)
    store = CaseStore(ContractGateway(ledger, session))

    assert [c.id for c in await store.load_all()] == ["c", "a"]


@pytest.mark.asyncio
async def test_load_all_index_read_error_returns_empty(session):
    ledger = _FlakyLedger({INDEX_KEY})
    store = CaseStore(ContractGateway(ledger, session))
    assert await store.load_all() == []


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_save_then_load_returns_pending_record(store, draft):
    saved = await store.save(draft)
    cases = await store.load_all()

    assert len(cases) == 1
    case = cases[0]
    assert case.id == saved.id
    assert (case.jurisdiction, case.crime_type, case.outcome) == ("Federal", "Drug", "Dismissed")
    assert case.fhe_analysis == "Pending FHE Analysis"
    assert case.timestamp == int(NOW)


@pytest.mark.asyncio
async def test_save_writes_record_then_index(store, ledger, draft):
    saved = await store.save(draft)

    assert ledger.writes == [case_key(saved.id), INDEX_KEY]
    assert decode_index(ledger.entries[INDEX_KEY]) == [saved.id]


@pytest.mark.asyncio
async def test_save_appends_to_existing_index(store, ledger, draft):
    put_record(ledger, "existing")
    saved = await store.save(draft)
    assert decode_index(ledger.entries[INDEX_KEY]) == ["existing", saved.id]


@pytest.mark.asyncio
async def test_save_over_malformed_index_starts_fresh(store, ledger, draft):
    ledger.entries[INDEX_KEY] = b"garbage"
    saved = await store.save(draft)
    assert decode_index(ledger.entries[INDEX_KEY]) == [saved.id]


@pytest.mark.asyncio
async def test_save_payload_is_encoded_draft(store, ledger):
    draft = CaseDraft(jurisdiction="State", crime_type="Violent", outcome="Reduced", details="witness 7")
    saved = await store.save(draft)

    stored = json.loads(ledger.entries[case_key(saved.id)])
    assert stored["data"].startswith("FHE-")
    assert "witness 7" not in stored["data"]
    assert Base64Codec().decode(stored["data"]) == {
        "jurisdiction": "State",
        "crimeType": "Violent",
        "outcome": "Reduced",
        "details": "witness 7",
    }


@pytest.mark.asyncio
async def test_save_without_wallet_writes_nothing(ledger, draft):
    store = CaseStore(ContractGateway(ledger, WalletSession()))
    with pytest.raises(SigningUnavailable):
        await store.save(draft)
    assert ledger.entries == {}


@pytest.mark.asyncio
async def test_save_rejected_by_user(store, ledger, wallet, draft):
    wallet.reject_signing = True
    with pytest.raises(UserRejected):
        await store.save(draft)
    assert ledger.entries == {}


class _IndexWriteFails(InMemoryLedger):
    async def set_data(self, key, value):
        if key == INDEX_KEY:
            raise RuntimeError("out of gas")
        return await super().set_data(key, value)


@pytest.mark.asyncio
async def test_save_index_failure_leaves_record_behind(session, draft):
    ledger = _IndexWriteFails()
    store = CaseStore(ContractGateway(ledger, session))

    with pytest.raises(RemoteFailure, match="out of gas"):
        await store.save(draft)

    # record written, index never updated: accepted inconsistency
    assert [k for k in ledger.entries if k != INDEX_KEY]
    assert INDEX_KEY not in ledger.entries
    assert await store.load_all() == []


class _GatedIndexLedger(InMemoryLedger):
    """Holds each index write until the test releases it."""

    def __init__(self):
        super().__init__()
        self.gates = []

    async def set_data(self, key, value):
        if key == INDEX_KEY:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return await super().set_data(key, value)


@pytest.mark.asyncio
async def test_concurrent_saves_lose_an_index_append(session):
    ledger = _GatedIndexLedger()
    store = CaseStore(ContractGateway(ledger, session), clock=lambda: NOW)

    task_a = asyncio.create_task(store.save(CaseDraft(jurisdiction="Federal", crime_type="Drug", outcome="A")))
    await spin_until(lambda: len(ledger.gates) == 1)  # A's record written, index write in flight

    task_b = asyncio.create_task(store.save(CaseDraft(jurisdiction="State", crime_type="Other", outcome="B")))
    await spin_until(lambda: len(ledger.gates) == 2)  # B read the index before A's write landed

    ledger.gates[0].set()
    record_a = await task_a
    ledger.gates[1].set()
    record_b = await task_b

    assert decode_index(ledger.entries[INDEX_KEY]) == [record_b.id]
    assert case_key(record_a.id) in ledger.entries
    assert [c.outcome for c in await store.load_all()] == ["B"]


# ---------------------------------------------------------------------------
# attach_analysis
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_attach_analysis_unknown_id(store, ledger):
    with pytest.raises(RecordNotFound):
        await store.attach_analysis("missing", "Fairness Score: 1%")
    assert ledger.writes == []


@pytest.mark.asyncio
async def test_attach_analysis_completes_record(store, ledger, draft):
    saved = await store.save(draft)
    index_before = ledger.entries[INDEX_KEY]

    await store.attach_analysis(saved.id, "Fairness Score: 82%")
    (case,) = await store.load_all()

    assert case.fhe_analysis == "Fairness Score: 82%"
    assert case.analysis_state == AnalysisState.completed
    assert ledger.entries[INDEX_KEY] == index_before

    await store.attach_analysis(saved.id, "Fairness Score: 90%")
    (case,) = await store.load_all()
    assert case.fhe_analysis == "Fairness Score: 90%"


@pytest.mark.asyncio
async def test_attach_analysis_preserves_unknown_fields(store, ledger):
    put_record(ledger, "legacy", reviewer="clerk-4")
    await store.attach_analysis("legacy", "done")

    stored = json.loads(ledger.entries[case_key("legacy")])
    assert stored["reviewer"] == "clerk-4"
    assert stored["fheAnalysis"] == "done"
    assert stored["outcome"] == "Probation"


@pytest.mark.asyncio
async def test_attach_analysis_malformed_record(store, ledger):
    put_record(ledger, "broken")
    ledger.entries[case_key("broken")] = b"[1, 2]"
    writes_before = list(ledger.writes)

    with pytest.raises(DecodeError):
        await store.attach_analysis("broken", "x")
    assert ledger.writes == writes_before


@pytest.mark.parametrize("text", ["", "   ", "Pending review", PENDING_ANALYSIS])
@pytest.mark.asyncio
async def test_attach_analysis_rejects_pending_text(store, ledger, draft, text):
    saved = await store.save(draft)
    await store.attach_analysis(saved.id, "Fairness Score: 82%")
    writes_before = list(ledger.writes)

    with pytest.raises(ValueError):
        await store.attach_analysis(saved.id, text)

    assert ledger.writes == writes_before
    (case,) = await store.load_all()
    assert case.fhe_analysis == "Fairness Score: 82%"
    assert case.analysis_state == AnalysisState.completed


@pytest.mark.asyncio
async def test_attach_analysis_requires_wallet(ledger):
    put_record(ledger, "a")
    store = CaseStore(ContractGateway(ledger, WalletSession()))
    with pytest.raises(SigningUnavailable):
        await store.attach_analysis("a", "x")


# ---------------------------------------------------------------------------
# wire format / ids
# ---------------------------------------------------------------------------


def test_record_wire_format_is_compact_and_ordered():
    record = CaseRecord(
        id="1700000000000-abc1234",
        encrypted_data="FHE-x",
        timestamp=100,
        jurisdiction="Federal",
        crime_type="White Collar",
        outcome="Dismissed",
    )
    assert encode_json(record.to_wire()) == (
        b'{"data":"FHE-x","timestamp":100,"jurisdiction":"Federal",'
        b'"crimeType":"White Collar","outcome":"Dismissed",'
        b'"fheAnalysis":"Pending FHE Analysis"}'
    )


def test_index_wire_format():
    assert encode_json(["1-a", "2-b"]) == b'["1-a","2-b"]'


def test_generate_case_id_shape():
    case_id = generate_case_id(1_700_000_000.5)
    millis, suffix = case_id.split("-")
    assert millis == "1700000000500"
    assert len(suffix) == 7
    assert suffix.isalnum() and suffix == suffix.lower()


def test_generate_case_id_varies():
    assert len({generate_case_id(NOW) for _ in range(50)}) > 1
