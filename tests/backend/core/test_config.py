import pytest

from backend.core import config


def test_validate_runtime_config_accepts_defaults() -> None:
    config.validate_runtime_config()


def test_validate_runtime_config_requires_secret_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError, match='JWT_SECRET_KEY'):
        config.validate_runtime_config()


def test_validate_runtime_config_rejects_unknown_collision_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'SLOT_COLLISION_MODE', 'fuzzy')

    with pytest.raises(RuntimeError, match='SLOT_COLLISION_MODE'):
        config.validate_runtime_config()


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [(None, False), ('yes', True), (' ON ', True), ('0', False)],
)
def test_get_bool(raw, expected) -> None:
    assert config._get_bool(raw) is expected
