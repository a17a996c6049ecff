from geoipfetch import defaults


def test_unix_config_file(monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")
    assert defaults.default_config_file() == "/usr/local/etc/GeoIP.conf"


def test_unix_database_directory(monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")
    assert defaults.default_database_directory() == "/usr/local/share/GeoIP"


def test_windows_paths_use_system_drive(monkeypatch):
    monkeypatch.setattr("sys.platform", "win32")
    monkeypatch.setenv("SYSTEMDRIVE", "D:")
    config = defaults.default_config_file()
    directory = defaults.default_database_directory()
    assert config.startswith("D:\\ProgramData\\")
    assert config.endswith("\\GeoIP.conf")
    assert directory.startswith("D:\\ProgramData\\")
    assert directory.endswith("\\GeoIP")


def test_windows_paths_share_a_base(monkeypatch):
    monkeypatch.setattr("sys.platform", "win32")
    monkeypatch.setenv("SYSTEMDRIVE", "E:")
    config = defaults.default_config_file()
    directory = defaults.default_database_directory()
    assert config.rsplit("\\", 1)[0] == directory.rsplit("\\", 1)[0]


def test_user_agent_carries_version():
    agent = defaults.user_agent()
    assert agent.startswith("geoipupdate/")
    assert agent.split("/", 1)[1] == defaults.VERSION