"""Field binder tests: environment names, precedence, defaults, required and sequences."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_config_binder.adapters.env.default import DefaultEnvReader
from lib_config_binder.adapters.file_loaders.structured import YAMLDecoder
from lib_config_binder.application.binder import FieldBinder, env_names, env_names_for, parse_env_value
from lib_config_binder.domain.errors import DecodeError, RequiredFieldError
from lib_config_binder.domain.schema import ScalarShape, describe, new_record, setting


@dataclass
class Node:
    name: str = setting(required=True)
    port: int = setting("80")


@dataclass
class Item:
    name: str = setting()


@dataclass
class Secrets:
    password: str = setting(env="DB_PASSWORD")


@dataclass
class Database:
    host: str = setting("localhost")
    secrets: Secrets = setting(anonymous=True)


@dataclass
class App:
    name: str = setting()
    port: int = setting("8080")
    debug: bool = setting()
    version: str = setting("1.0")
    tags: list[str] = setting("[a, b]")
    ratio: Optional[float] = setting()
    database: Database = setting()
    nodes: list[Node] = setting()
    items: list[Item] = setting()


@dataclass
class Strict:
    token: str = setting(required=True)
    backup: Optional[Item] = setting()


@dataclass(eq=False)
class Peer:
    host: str = setting()
    port: int = setting("7000")


@dataclass
class Cluster:
    peers: list[Peer] = setting()
    primary: Peer = setting("{host: primary.local}")
    limits: dict[str, int] = setting()


def _binder(environ: dict[str, str], **kwargs) -> FieldBinder:
    return FieldBinder(DefaultEnvReader(environ), literal_parser=YAMLDecoder().parse_literal, **kwargs)


def test_env_names_verbatim_then_upper() -> None:
    name = describe(App).fields[0]
    assert env_names(name, ("App",)) == ["App_name", "APP_NAME"]
    assert env_names(name, ("APP",)) == ["APP_NAME"]
    assert env_names(name, ()) == ["name", "NAME"]


def test_env_names_for_walks_nested_fields() -> None:
    names = dict(env_names_for(App, ("APP",)))
    assert names["database.host"] == ["APP_database_host", "APP_DATABASE_HOST"]
    assert names["database.secrets.password"] == ["DB_PASSWORD"]
    assert names["nodes.0.name"] == ["APP_nodes_0_name", "APP_NODES_0_NAME"]


def test_environment_beats_file_values() -> None:
    app = new_record(App)
    app.port = 80
    _binder({"APP_PORT": "9090"}).bind(app, ("APP",))
    assert app.port == 9090


def test_verbatim_name_is_probed_first() -> None:
    app = new_record(App)
    _binder({"APP_name": "lower", "APP_NAME": "upper"}).bind(app, ("APP",))
    assert app.name == "lower"


def test_defaults_fill_blank_fields_only() -> None:
    app = new_record(App)
    app.version = "2.5"
    _binder({}).bind(app, ("APP",))
    assert app.port == 8080
    assert app.version == "2.5"
    assert app.tags == ["a", "b"]
    assert app.database.host == "localhost"
    assert app.ratio is None


def test_string_defaults_keep_their_text() -> None:
    app = new_record(App)
    _binder({}).bind(app, ("APP",))
    assert app.version == "1.0"


def test_strings_from_environment_are_verbatim() -> None:
    app = new_record(App)
    _binder({"APP_NAME": "[not, a, list]", "APP_VERSION": "007"}).bind(app, ("APP",))
    assert app.name == "[not, a, list]"
    assert app.version == "007"


def test_structured_values_from_environment() -> None:
    app = new_record(App)
    _binder({"APP_TAGS": "[x, y, z]", "APP_RATIO": "0.5"}).bind(app, ("APP",))
    assert app.tags == ["x", "y", "z"]
    assert app.ratio == 0.5


def test_invalid_environment_value_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        _binder({"APP_PORT": "eighty"}).bind(new_record(App), ("APP",))


def test_explicit_env_and_anonymous_records() -> None:
    app = new_record(App)
    _binder({"DB_PASSWORD": "s3cret", "APP_DATABASE_HOST": "db"}).bind(app, ("APP",))
    assert app.database.secrets.password == "s3cret"
    assert app.database.host == "db"


@pytest.mark.parametrize("raw", ["0", "false", "FALSE", "F", "f", "False"])
def test_false_boolean_values(raw: str) -> None:
    app = new_record(App)
    app.debug = True
    _binder({"APP_DEBUG": raw}).bind(app, ("APP",))
    assert app.debug is False


@pytest.mark.parametrize("raw", ["1", "true", "yes", "no", "off", "anything"])
def test_true_boolean_values(raw: str) -> None:
    app = new_record(App)
    _binder({"APP_DEBUG": raw}).bind(app, ("APP",))
    assert app.debug is True


@given(st.text(min_size=1).filter(lambda text: text.lower() not in {"0", "f", "false"}))
def test_any_other_text_is_true(raw: str) -> None:
    assert parse_env_value(raw, ScalarShape(bool), "FLAG", YAMLDecoder().parse_literal) is True


def test_empty_boolean_value_is_false() -> None:
    assert parse_env_value("", ScalarShape(bool), "FLAG", YAMLDecoder().parse_literal) is False


def test_required_field_raises_only_when_enforcing() -> None:
    with pytest.raises(RequiredFieldError) as info:
        _binder({}).bind(new_record(Strict), ("APP",))
    assert info.value.field == "token"
    assert info.value.env_names == ("APP_token", "APP_TOKEN")

    record = new_record(Strict)
    _binder({}, enforce_required=False).bind(record, ("APP",))
    assert record.token == ""


def test_existing_sequence_elements_are_bound_by_index() -> None:
    app = new_record(App)
    app.nodes = [Node(name="a", port=0), Node(name="b", port=1)]
    _binder({"APP_NODES_1_PORT": "99"}).bind(app, ("APP",))
    assert app.nodes == [Node(name="a", port=80), Node(name="b", port=99)]


def test_sequence_synthesised_from_environment() -> None:
    app = new_record(App)
    _binder({"APP_ITEMS_0_NAME": "a", "APP_ITEMS_1_NAME": "b", "APP_ITEMS_3_NAME": "gap"}).bind(app, ("APP",))
    assert app.items == [Item(name="a"), Item(name="b")]


def test_synthesis_terminates_with_defaulted_elements() -> None:
    app = new_record(App)
    _binder({"APP_NODES_0_NAME": "n0"}).bind(app, ("APP",))
    assert app.nodes == [Node(name="n0", port=80)]


def test_synthesis_without_variables_leaves_sequence_empty() -> None:
    app = new_record(App)
    _binder({}).bind(app, ("APP",))
    assert app.nodes == []
    assert app.items == []


def test_synthesised_elements_are_checked_for_required_fields() -> None:
    environ = {"APP_NODES_0_NAME": "n0", "APP_NODES_1_PORT": "90"}
    with pytest.raises(RequiredFieldError):
        _binder(environ).bind(new_record(App), ("APP",))

    app = new_record(App)
    _binder(environ, enforce_required=False).bind(app, ("APP",))
    assert app.nodes == [Node(name="n0", port=80), Node(name="", port=90)]


def test_optional_records_stay_none() -> None:
    record = new_record(Strict)
    _binder({"APP_TOKEN": "t", "APP_BACKUP_NAME": "ignored"}).bind(record, ("APP",))
    assert record.backup is None


def test_optional_record_bound_when_present() -> None:
    record = Strict(token="t", backup=Item(name=""))
    _binder({"APP_BACKUP_NAME": "b"}).bind(record, ("APP",))
    assert record.backup == Item(name="b")


def test_verbose_binding_logs_candidates(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_config_binder")
    _binder({"APP_PORT": "1"}, verbose=True).bind(new_record(Item), ("APP",))
    _binder({"APP_PORT": "1"}, verbose=True).bind(new_record(App), ("APP",))
    messages = [record.getMessage() for record in caplog.records]
    assert "field_env_candidates" in messages
    assert "field_loaded_from_env" in messages
    assert "field_default_applied" in messages


def test_synthesis_stops_for_elements_without_value_equality() -> None:
    cluster = new_record(Cluster)
    _binder({}).bind(cluster, ("APP",))
    assert cluster.peers == []

    cluster = new_record(Cluster)
    _binder({"APP_PEERS_0_HOST": "p0", "APP_PEERS_1_PORT": "7001"}).bind(cluster, ("APP",))
    assert [(peer.host, peer.port) for peer in cluster.peers] == [("p0", 7000), ("", 7001)]


def test_default_applies_to_blank_record_without_value_equality() -> None:
    cluster = new_record(Cluster)
    _binder({}).bind(cluster, ("APP",))
    assert (cluster.primary.host, cluster.primary.port) == ("primary.local", 7000)


def test_environment_record_literal_keeps_other_fields() -> None:
    cluster = new_record(Cluster)
    cluster.primary = Peer(host="file.local", port=5432)
    _binder({"APP_PRIMARY": "{port: 1}"}).bind(cluster, ("APP",))
    assert (cluster.primary.host, cluster.primary.port) == ("file.local", 1)


def test_environment_mapping_literal_updates_keys() -> None:
    cluster = new_record(Cluster)
    cluster.limits = {"connections": 10}
    _binder({"APP_LIMITS": "{timeout: 5}"}).bind(cluster, ("APP",))
    assert cluster.limits == {"connections": 10, "timeout": 5}
