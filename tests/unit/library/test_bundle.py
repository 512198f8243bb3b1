"""Tests for the .prb bundle codec."""

from __future__ import annotations

import base64
import json
import zlib

import pytest

from promptchronicle.db.models import BundlePayload, Collection, Tag
from promptchronicle.library.bundle import (
    BUNDLE_FORMAT_VERSION,
    BundleError,
    BundleFormatError,
    CorruptBundleError,
    DecryptionError,
    PasswordRequiredError,
    PayloadParseError,
    create_bundle,
    parse_bundle,
)
from promptchronicle.library.chronicle import commit

NOW = 1709294400.0


@pytest.fixture
def workspace(item_factory):
    first = commit(item_factory("a", tags=["x"], tag_ids=["tag-1"]), "first", now=NOW)
    second = item_factory("b", parent_id="a", root_id="a", version_number="1.1")
    return BundlePayload(
        items=[first, second],
        collections=[Collection(id="col-1", name="Work", created_at="2024-01-01T00:00:00.000Z")],
        tags=[Tag(id="tag-1", name="urgent", color="#ff0000")],
    )


def _envelope(text: str) -> dict:
    return json.loads(text)


def _with(text: str, **fields) -> str:
    env = _envelope(text)
    env.update(fields)
    return json.dumps(env)


# ---------------------------------------------------------------------------
# Envelope shape
# ---------------------------------------------------------------------------


def test_envelope_fields_plain(workspace):
    env = _envelope(create_bundle(workspace, compress=False, now=NOW))

    assert env["version"] == BUNDLE_FORMAT_VERSION
    assert env["created"] == "2024-03-01T12:00:00.000Z"
    assert env["itemCount"] == 2
    assert env["encrypted"] is False
    assert env["compressed"] is False
    assert "salt" not in env and "iv" not in env
    decoded = json.loads(base64.b64decode(env["payload"]))
    assert [i["id"] for i in decoded["items"]] == ["a", "b"]


def test_envelope_is_indented_json(workspace):
    text = create_bundle(workspace, now=NOW)
    assert text.startswith('{\n  "version": "1.0",')


def test_compressed_payload_inflates(workspace):
    env = _envelope(create_bundle(workspace, compress=True))
    assert env["compressed"] is True
    decoded = json.loads(zlib.decompress(base64.b64decode(env["payload"])))
    assert len(decoded["items"]) == 2


# ---------------------------------------------------------------------------
# Round trips
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("compress", [True, False])
def test_round_trip_unencrypted(workspace, compress):
    result = parse_bundle(create_bundle(workspace, compress=compress))
    assert result.payload == workspace
    assert result.envelope.item_count == 2


def test_round_trip_encrypted_compressed(workspace):
    text = create_bundle(workspace, compress=True, encrypt=True, password="correct horse")
    env = _envelope(text)

    assert env["encrypted"] is True
    assert len(base64.b64decode(env["salt"])) == 16
    assert len(base64.b64decode(env["iv"])) == 12

    result = parse_bundle(text, "correct horse")
    assert result.payload == workspace
    # Chronicle hashes survive the trip unchanged.
    assert result.payload.items[0].chronicle[0].hash == workspace.items[0].chronicle[0].hash


def test_encrypt_twice_uses_fresh_salt_and_iv(workspace):
    a = _envelope(create_bundle(workspace, encrypt=True, password="pw"))
    b = _envelope(create_bundle(workspace, encrypt=True, password="pw"))
    assert a["salt"] != b["salt"]
    assert a["iv"] != b["iv"]


def test_round_trip_keeps_empty_string_fields(item_factory):
    payload = BundlePayload(
        items=[item_factory("a", version_number="", parent_id="", collection_id="")],
        collections=[Collection(id="col-1", name="Work", color="", icon="")],
    )
    assert parse_bundle(create_bundle(payload)).payload == payload


def test_empty_workspace_round_trip():
    empty = BundlePayload()
    result = parse_bundle(create_bundle(empty))
    assert result.payload == empty
    assert result.envelope.item_count == 0


def test_encrypt_without_password_warns_and_stays_plain(workspace):
    with pytest.warns(UserWarning, match="NOT encrypted"):
        text = create_bundle(workspace, encrypt=True)
    env = _envelope(text)
    assert env["encrypted"] is False
    assert parse_bundle(text).payload == workspace


# ---------------------------------------------------------------------------
# Legacy payload shape
# ---------------------------------------------------------------------------


def test_bare_item_list_payload(workspace):
    raw = json.dumps([i.to_dict() for i in workspace.items]).encode()
    text = json.dumps(
        {
            "version": "1.0",
            "created": "",
            "itemCount": 2,
            "encrypted": False,
            "compressed": False,
            "payload": base64.b64encode(raw).decode(),
        }
    )
    result = parse_bundle(text)
    assert [i.id for i in result.payload.items] == ["a", "b"]
    assert result.payload.collections == []
    assert result.payload.tags == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_not_json():
    with pytest.raises(BundleFormatError, match="not valid JSON"):
        parse_bundle("definitely not json")


def test_not_an_object():
    with pytest.raises(BundleFormatError):
        parse_bundle("[1, 2, 3]")


@pytest.mark.parametrize("missing", ["version", "payload"])
def test_missing_required_field(workspace, missing):
    env = _envelope(create_bundle(workspace))
    del env[missing]
    with pytest.raises(BundleFormatError, match="missing required fields"):
        parse_bundle(json.dumps(env))


def test_corrupt_base64(workspace):
    text = _with(create_bundle(workspace), payload="!!!not base64!!!")
    with pytest.raises(BundleFormatError, match="corrupt payload"):
        parse_bundle(text)


def test_encrypted_without_password(workspace):
    text = create_bundle(workspace, encrypt=True, password="pw")
    with pytest.raises(PasswordRequiredError):
        parse_bundle(text)


def test_encrypted_missing_iv(workspace):
    env = _envelope(create_bundle(workspace, encrypt=True, password="pw"))
    del env["iv"]
    with pytest.raises(BundleFormatError, match="missing salt or IV"):
        parse_bundle(json.dumps(env), "pw")


def test_wrong_password(workspace):
    text = create_bundle(workspace, encrypt=True, password="right")
    with pytest.raises(DecryptionError, match="Wrong password"):
        parse_bundle(text, "wrong")


def _flip(b64: str, position: str) -> str:
    raw = bytearray(base64.b64decode(b64))
    index = {"first": 0, "middle": len(raw) // 2, "tag": len(raw) - 8}[position]
    raw[index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode()


@pytest.mark.parametrize("position", ["first", "middle", "tag"])
def test_tampered_ciphertext(workspace, position):
    text = create_bundle(workspace, encrypt=True, password="pw")
    env = _envelope(text)
    env["payload"] = _flip(env["payload"], position)
    with pytest.raises(DecryptionError):
        parse_bundle(json.dumps(env), "pw")


def test_tampered_iv(workspace):
    env = _envelope(create_bundle(workspace, encrypt=True, password="pw"))
    env["iv"] = _flip(env["iv"], "first")
    with pytest.raises(DecryptionError):
        parse_bundle(json.dumps(env), "pw")


def test_compressed_flag_on_uncompressed_data(workspace):
    text = _with(create_bundle(workspace, compress=False), compressed=True)
    with pytest.raises(CorruptBundleError, match="Decompression failed"):
        parse_bundle(text)


def test_payload_not_json(workspace):
    text = _with(
        create_bundle(workspace, compress=False),
        payload=base64.b64encode(b"not json at all").decode(),
    )
    with pytest.raises(PayloadParseError):
        parse_bundle(text)


def test_payload_wrong_shape(workspace):
    text = _with(
        create_bundle(workspace, compress=False),
        payload=base64.b64encode(b'"just a string"').decode(),
    )
    with pytest.raises(PayloadParseError, match="expected a list"):
        parse_bundle(text)


def test_payload_item_without_id(workspace):
    text = _with(
        create_bundle(workspace, compress=False),
        payload=base64.b64encode(b'{"items": [{"title": "no id"}]}').decode(),
    )
    with pytest.raises(PayloadParseError):
        parse_bundle(text)


def test_all_failures_are_bundle_errors():
    for exc in (
        BundleFormatError,
        PasswordRequiredError,
        DecryptionError,
        CorruptBundleError,
        PayloadParseError,
    ):
        assert issubclass(exc, BundleError)
        assert issubclass(exc, ValueError)
