from forge_relay.core.library import (
    DRAFT_KEY,
    HISTORY_KEY,
    BlueprintHistory,
    DraftStore,
    MemoryStore,
    blueprint_filename,
)
from forge_relay.models.requests import GenerationRequest


def test_history_is_newest_first_and_capped():
    history = BlueprintHistory(MemoryStore())
    saved = [history.save(f"Brand {i}", f"content {i}") for i in range(12)]

    entries = history.entries()

    assert len(entries) == 10
    assert [e.id for e in entries] == [b.id for b in reversed(saved)][:10]
    assert entries[0].brand_name == "Brand 11"


def test_history_round_trips_through_store_with_camel_case_keys():
    store = MemoryStore()
    saved = BlueprintHistory(store).save("Nova", "# Nova")

    assert '"brandName":"Nova"' in store.get(HISTORY_KEY)
    assert '"createdAt"' in store.get(HISTORY_KEY)
    assert len(saved.id) == 10
    assert BlueprintHistory(store).get(saved.id) == saved


def test_history_delete():
    history = BlueprintHistory(MemoryStore())
    keep = history.save("Keep", "a")
    drop = history.save("Drop", "b")

    history.delete(drop.id)

    assert [e.id for e in history.entries()] == [keep.id]
    assert history.get(drop.id) is None


def test_unreadable_history_is_discarded():
    store = MemoryStore()
    store.set(HISTORY_KEY, "{oops")

    assert BlueprintHistory(store).entries() == []


def test_draft_save_load_clear():
    store = MemoryStore()
    drafts = DraftStore(store)
    draft = GenerationRequest(brandName="Nova", notes="wip")

    assert drafts.load() is None
    drafts.save(draft)
    assert drafts.load() == draft

    drafts.clear()
    assert store.get(DRAFT_KEY) is None
    assert drafts.load() is None


def test_blueprint_filename():
    assert blueprint_filename("Nova Labs  AI") == "nova-labs-ai-blueprint.md"
    assert blueprint_filename("Nova") == "nova-blueprint.md"
