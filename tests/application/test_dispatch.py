from __future__ import annotations

from dataclasses import dataclass

import pytest

from lib_config_binder.adapters.file_loaders.structured import DECODERS
from lib_config_binder.application.dispatch import PROBE_ORDER, DecoderDispatch
from lib_config_binder.domain.errors import DecodeError, UnmatchedKeysError
from lib_config_binder.domain.schema import new_record, setting


@dataclass
class Server:
    host: str = setting()
    port: int = setting()


@pytest.fixture()
def dispatch() -> DecoderDispatch:
    return DecoderDispatch(DECODERS)


def test_probe_order_is_toml_json_yaml() -> None:
    assert PROBE_ORDER == ("toml", "json", "yaml")


def test_extension_selects_decoder(dispatch: DecoderDispatch) -> None:
    server = new_record(Server)
    assert dispatch.decode(b'{"host": "db", "port": 1}', server, strict=True, source="server.json") == "json"
    assert server == Server(host="db", port=1)


def test_extension_decoder_failure_is_not_probed(dispatch: DecoderDispatch) -> None:
    with pytest.raises(DecodeError):
        dispatch.decode(b"host: db\n", new_record(Server), strict=False, source="server.json")


@pytest.mark.parametrize(
    "payload, expected",
    [
        (b'host = "db"\nport = 5432\n', "toml"),
        (b'{"host": "db", "port": 5432}', "json"),
        (b"host: db\nport: 5432\n", "yaml"),
    ],
)
def test_probing_without_extension(dispatch: DecoderDispatch, payload: bytes, expected: str) -> None:
    server = new_record(Server)
    assert dispatch.decode(payload, server, strict=True, source="config/server") == expected
    assert server == Server(host="db", port=5432)


def test_unmatched_keys_stop_probing(dispatch: DecoderDispatch) -> None:
    server = new_record(Server)
    with pytest.raises(UnmatchedKeysError) as info:
        dispatch.decode(b'host = "db"\nextra = 1\n', server, strict=True, source="config/server")
    assert info.value.keys == ("extra",)
    assert server == new_record(Server)


def test_all_formats_failing_raises_generic_error(dispatch: DecoderDispatch) -> None:
    with pytest.raises(DecodeError, match="failed to decode config config/server"):
        dispatch.decode(b"- just\n- a list\n", new_record(Server), strict=False, source="config/server")


def test_failed_attempt_leaves_record_untouched(dispatch: DecoderDispatch) -> None:
    server = Server(host="keep", port=1)
    with pytest.raises(DecodeError):
        dispatch.decode(b"host: other\nport: nope\n", server, strict=False, source="server.yml")
    assert server == Server(host="keep", port=1)


def test_all_formats_failing_reports_last_conversion_error(dispatch: DecoderDispatch) -> None:
    with pytest.raises(DecodeError, match="failed to decode config config/server: Cannot decode port") as info:
        dispatch.decode(b"host: db\nport: nope\n", new_record(Server), strict=False, source="config/server")
    assert isinstance(info.value.__cause__, DecodeError)
    assert "expected int" in str(info.value.__cause__)
