import os

import pytest

from varprice.config import load_config, refresh_config


@pytest.fixture(autouse=True)
def clear_varprice_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("VARPRICE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    refresh_config()
    yield
    load_config.cache_clear()


@pytest.fixture
def color_size_options():
    return [
        {"name": "Color", "values": ["Rojo", "Azul"]},
        {"name": "Talla", "values": ["S", "M"]},
    ]
