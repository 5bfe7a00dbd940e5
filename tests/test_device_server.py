import yaml

from config_loader import get_sample_config, load_config
from main import main
from services.device_server import DeviceServer


def build_config(tmp_path, monkeypatch, **database):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("MAX_SCAN_ADDRESSES", raising=False)
    data = get_sample_config()
    data['cache']['file'] = str(tmp_path / "devices.json")
    data['database'].update(database)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return load_config(str(path))


def test_components_are_wired(tmp_path, monkeypatch):
    server = DeviceServer(config=build_config(tmp_path, monkeypatch), configure_logging=False)

    paths = {route.path for route in server.api.app.routes}
    assert {"/api/scan-network", "/api/device/control", "/api/devices/{device_id}/adopt",
            "/api/system/health", "/api/cache"} <= paths
    assert server.db is None
    assert server.adoption.available is False
    assert server.cache.storage.path == tmp_path / "devices.json"


def test_database_enabled_builds_store(tmp_path, monkeypatch):
    server = DeviceServer(config=build_config(tmp_path, monkeypatch, enabled=True), configure_logging=False)

    assert server.db is not None
    assert server.adoption.available is True


def test_unknown_command(capsys):
    assert main(["main.py", "bogus"]) == 2
    assert "Unknown command" in capsys.readouterr().out
