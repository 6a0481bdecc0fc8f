import json

import pytest
from pydantic import ValidationError

from orchestrator.config import load_environment, parse_environment, to_deploy_params
from orchestrator.constants import DEFAULT_SETTINGS
from orchestrator.errors import ConfigurationError
from orchestrator.models import Environment, Source, parse_numeric_string


def test_numeric_string():
    assert parse_numeric_string("1") == 1
    assert parse_numeric_string("8545") == 8545
    for bad in (1, "", "a", "12a", " 12", "-1", None):
        with pytest.raises(ValueError):
            parse_numeric_string(bad)


def test_default_settings_are_valid():
    env = Environment.model_validate(dict(DEFAULT_SETTINGS))
    assert env.POSTGRES_PORT == 5432
    assert env.ETHEREUM_NETWORK == "hardhat"
    assert env.GRAPH_NODE_STATUS_PORT == 8020


@pytest.mark.parametrize(
    "override",
    [
        {"POSTGRES_PORT": 5432},
        {"POSTGRES_PORT": "not a number"},
        {"POSTGRES_PORT": ""},
        {"POSTGRES_DB": ""},
        {"IPFS_PORT": "50.01"},
    ],
)
def test_invalid_values_are_rejected(override):
    with pytest.raises(ValidationError):
        Environment.model_validate({**DEFAULT_SETTINGS, **override})


@pytest.mark.parametrize("missing", sorted(DEFAULT_SETTINGS))
def test_every_field_is_required(missing):
    payload = {k: v for k, v in DEFAULT_SETTINGS.items() if k != missing}
    with pytest.raises(ConfigurationError) as excinfo:
        parse_environment(payload)
    assert missing in excinfo.value.errors


def test_configuration_error_lists_every_bad_field():
    with pytest.raises(ConfigurationError) as excinfo:
        parse_environment({**DEFAULT_SETTINGS, "POSTGRES_PORT": "x", "ETHEREUM_NETWORK": ""})
    assert set(excinfo.value.errors) == {"POSTGRES_PORT", "ETHEREUM_NETWORK"}
    assert "POSTGRES_PORT" in str(excinfo.value)


def test_extra_keys_are_ignored():
    env = parse_environment({**DEFAULT_SETTINGS, "PATH": "/usr/bin", "HOME": "/root"})
    assert env.IPFS_PORT == 5001


def test_load_from_environ_mapping():
    env = load_environment(environ={**DEFAULT_SETTINGS, "ETHEREUM_PORT": "9545"})
    assert env.ETHEREUM_PORT == 9545


def test_load_from_json_file(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text(json.dumps(dict(DEFAULT_SETTINGS)))
    env = load_environment(path)
    assert env.GRAPH_NODE_GRAPHQL_PORT == 8000


def test_load_from_yaml_file(tmp_path):
    path = tmp_path / "stack.yaml"
    path.write_text("\n".join(f'{k}: "{v}"' for k, v in DEFAULT_SETTINGS.items()))
    env = load_environment(path)
    assert env.POSTGRES_USER == "dev"


def test_yaml_integers_are_not_numeric_strings(tmp_path):
    path = tmp_path / "stack.yaml"
    path.write_text("\n".join(f"{k}: {v}" for k, v in DEFAULT_SETTINGS.items()))
    with pytest.raises(ConfigurationError) as excinfo:
        load_environment(path)
    assert "POSTGRES_PORT" in excinfo.value.errors


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_environment(tmp_path / "nope.json")


def test_malformed_config_file(tmp_path):
    path = tmp_path / "stack.json"
    path.write_text('{"POSTGRES_PORT": "5432",\n\t"x": [')
    with pytest.raises(ConfigurationError) as excinfo:
        load_environment(path)
    assert "<file>" in excinfo.value.errors


def test_config_file_that_is_not_text(tmp_path):
    path = tmp_path / "stack.yaml"
    path.write_bytes(b"POSTGRES_PORT: \xff\xfe\n")
    with pytest.raises(ConfigurationError) as excinfo:
        load_environment(path)
    assert "UTF-8" in excinfo.value.errors["<file>"]


def test_to_deploy_params():
    params = to_deploy_params(parse_environment(DEFAULT_SETTINGS))
    assert params == {
        "postgres_port": 5432,
        "postgres_db": "dev",
        "postgres_user": "dev",
        "postgres_password": "dev",
        "ipfs_port": 5001,
        "ethereum_port": 8545,
        "ethereum_network": "hardhat",
        "graph_node_graphql_port": 8000,
        "graph_node_status_port": 8020,
    }


def test_source_parse():
    source = Source.parse("Lock:0x5FbDB2315678afecb367f032d93F642f64180aa3")
    assert source.contract_name == "Lock"
    assert source.abi_path is None
    with_abi = Source.parse("Lock:0xabc:artifacts/Lock.json")
    assert str(with_abi.abi_path) == "artifacts/Lock.json"
    with pytest.raises(ValueError):
        Source.parse("Lock")
