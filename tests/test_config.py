"""Tests for runtime configuration loading and network configs."""

import pytest

from BoundLearn.core.backend import config as runtime_config
from BoundLearn.nn import NetworkConfig
from BoundLearn.nn.constraints import MaxNorm, NonNegative, ParamRole
from BoundLearn.nn.initializations import Normal
from BoundLearn.nn.optim.optimizers import SGDMomentum


def test_defaults_without_file(tmp_path, monkeypatch) -> None:
    for var in runtime_config.ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    cfg = runtime_config.load_config(str(tmp_path / "missing.yaml"))
    assert cfg == runtime_config.DEFAULTS


def test_yaml_then_env_overrides(tmp_path, monkeypatch) -> None:
    path = tmp_path / "boundlearn_config.yaml"
    path.write_text("seed: 7\nconstraint_epsilon: 1.0e-8\ndtype: float64\n")
    monkeypatch.setenv("BOUNDLEARN_DTYPE", "float32")
    monkeypatch.delenv("BOUNDLEARN_SEED", raising=False)

    cfg = runtime_config.load_config(str(path))
    assert cfg["seed"] == 7
    assert cfg["constraint_epsilon"] == 1e-8
    assert cfg["dtype"] == "float32"
    assert cfg["device"] == "cpu"


def test_config_file_from_environment(tmp_path, monkeypatch) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text("compact_storage: true\n")
    monkeypatch.setenv("BOUNDLEARN_CONFIG", str(path))
    assert runtime_config.load_yaml_config() == {"compact_storage": True}


def test_non_mapping_yaml_is_rejected(tmp_path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        runtime_config.load_yaml_config(str(path))


def test_network_config_round_trip() -> None:
    conf = NetworkConfig(
        seed=3,
        updater=SGDMomentum(learning_rate=0.05, beta=0.8),
        weight_init="distribution",
        dist=Normal(0.0, 5.0),
        bias_init=0.2,
        constraints=MaxNorm(2.0),
    ).add_default_constraints(ParamRole.BIAS, NonNegative())

    restored = NetworkConfig.from_config(conf.get_config())
    assert restored == conf
    assert restored.default_constraints == {
        ParamRole.ALL: (MaxNorm(2.0),),
        ParamRole.BIAS: (NonNegative(),),
    }
    assert restored.updater.beta == 0.8
    assert restored != NetworkConfig(seed=3)
