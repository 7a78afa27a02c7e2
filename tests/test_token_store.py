"""Tests for the file token store and handshake contexts."""
from todo_mcp.auth.token_store import HandshakeContext, HandshakeRegistry, TokenStore


def test_save_and_read_token(tmp_path):
    store = TokenStore(str(tmp_path / "nested" / "token"))

    store.save_token("abc")

    assert store.get_stored_token() == "abc"


def test_save_overwrites_previous_token(token_store):
    token_store.save_token("first")
    token_store.save_token("second")

    assert token_store.get_stored_token() == "second"


def test_stored_token_is_trimmed(token_store):
    token_store.path.write_text("  abc\n", encoding="utf-8")

    assert token_store.get_stored_token() == "abc"


def test_missing_or_empty_file_reads_as_absent(token_store):
    assert token_store.get_stored_token() is None

    token_store.path.write_text("\n", encoding="utf-8")
    assert token_store.get_stored_token() is None


def test_clear_token_is_idempotent(token_store):
    token_store.save_token("abc")

    token_store.clear_token()
    token_store.clear_token()

    assert token_store.get_stored_token() is None
    assert not token_store.path.exists()


def test_handshake_context_slots():
    context = HandshakeContext()
    context.put("state", "s1")
    context.put("nonce", "n1")

    assert context.get("state") == "s1"
    context.remove("state")
    context.remove("missing")
    assert context.get("state") is None
    assert "nonce" in context

    context.clear()
    assert context.get("nonce") is None


def test_registry_keeps_handshakes_apart():
    registry = HandshakeRegistry()
    first, second = HandshakeContext(), HandshakeContext()
    first.put("state", "a")
    second.put("state", "b")
    registry.register("a", first)
    registry.register("b", second)

    assert registry.get("a") is first
    assert registry.get("b").get("state") == "b"
    assert registry.get(None) is None

    registry.discard("a")
    assert registry.get("a") is None
    assert first.get("state") is None
    assert len(registry) == 1


def test_registry_evicts_stale_handshakes():
    now = [1000.0]
    registry = HandshakeRegistry(ttl=600, clock=lambda: now[0])
    abandoned = HandshakeContext()
    abandoned.put("state", "s-old")
    registry.register("s-old", abandoned)

    now[0] += 601
    registry.register("s-new", HandshakeContext())

    assert registry.get("s-old") is None
    assert "state" not in abandoned
    assert len(registry) == 1


def test_registry_keeps_fresh_handshakes():
    now = [1000.0]
    registry = HandshakeRegistry(ttl=600, clock=lambda: now[0])
    context = HandshakeContext()
    registry.register("s-1", context)

    now[0] += 599

    assert registry.get("s-1") is context
