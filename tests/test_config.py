import pytest
import os
import sys

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import build_server_config, load_settings, DEFAULT_PORT
from core.errors import ConfigError
from core.server import StaticServer


def test_defaults(tmp_path):
    """Test defaults reproduce a plain local static server."""
    config = build_server_config(root_dir=tmp_path)

    assert config.root_dir == tmp_path.resolve()
    assert config.bind_address == ""
    assert config.host == "0.0.0.0"
    assert config.port == DEFAULT_PORT == 8080
    assert config.index_files == ["index.html"]
    assert config.mime_overrides == {}
    assert config.graceful_timeout is None


def test_missing_root(tmp_path):
    with pytest.raises(ConfigError) as exc_info:
        build_server_config(root_dir=tmp_path / "nope")
    assert "does not exist" in str(exc_info.value)


def test_root_must_be_directory(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")

    with pytest.raises(ConfigError):
        build_server_config(root_dir=target)


@pytest.mark.parametrize("port", [0, -1, 65536, 100000])
def test_port_out_of_range(tmp_path, port):
    with pytest.raises(ConfigError):
        build_server_config(root_dir=tmp_path, port=port)


@pytest.mark.parametrize("port", [1, 8080, 65535])
def test_port_in_range(tmp_path, port):
    assert build_server_config(root_dir=tmp_path, port=port).port == port


def test_index_files_validation(tmp_path):
    with pytest.raises(ConfigError):
        build_server_config(root_dir=tmp_path, index_files=[])
    with pytest.raises(ConfigError):
        build_server_config(root_dir=tmp_path, index_files=["../index.html"])

    config = build_server_config(root_dir=tmp_path, index_files=["index.erb", "", "index.html"])
    assert config.index_files == ["index.erb", "index.html"]


def test_mime_overrides_are_normalized(tmp_path):
    config = build_server_config(root_dir=tmp_path, mime_overrides={".ERB": "text/html", "js": "text/javascript"})
    assert config.mime_overrides == {"erb": "text/html", "js": "text/javascript"}


def test_configure_is_pure_setup(tmp_path):
    """Test configure validates without binding anything."""
    server = StaticServer()
    config = server.configure(tmp_path, bind_address="127.0.0.1", port=1, index_files=("home.html",))

    assert server.config is config
    assert server.app is not None
    assert not server.running
    assert server.address is None


def test_configure_errors(tmp_path):
    server = StaticServer()

    with pytest.raises(ConfigError):
        server.configure(tmp_path / "missing")
    with pytest.raises(ConfigError):
        server.configure(tmp_path, port=70000)
    assert server.config is None


def test_start_requires_configuration():
    with pytest.raises(ConfigError):
        StaticServer().start()


def test_load_settings_defaults():
    settings = load_settings({})

    assert str(settings.static_root) == "."
    assert settings.bind_address == ""
    assert settings.port == 8080
    assert settings.index_files == ["index.html"]
    assert settings.template_extension == "erb"
    assert settings.template_content_type == "text/html"
    assert settings.graceful_timeout is None
    assert settings.metrics_port == 0
    assert settings.enable_tracing is False


def test_load_settings_from_environment():
    settings = load_settings({
        "STATIC_ROOT": "/srv/www",
        "BIND_ADDRESS": "127.0.0.1",
        "PORT": "9000",
        "INDEX_FILES": "index.erb, index.html",
        "TEMPLATE_EXTENSION": ".tpl",
        "GRACEFUL_TIMEOUT": "2.5",
        "LOG_LEVEL": "debug",
        "METRICS_PORT": "9100",
        "ENABLE_TRACING": "TRUE",
    })

    assert str(settings.static_root) == "/srv/www"
    assert settings.bind_address == "127.0.0.1"
    assert settings.port == 9000
    assert settings.index_files == ["index.erb", "index.html"]
    assert settings.template_extension == ".tpl"
    assert settings.graceful_timeout == 2.5
    assert settings.log_level == "DEBUG"
    assert settings.metrics_port == 9100
    assert settings.enable_tracing is True


@pytest.mark.parametrize("environ", [
    {"PORT": "eighty"},
    {"METRICS_PORT": "x"},
    {"GRACEFUL_TIMEOUT": "soon"},
])
def test_load_settings_invalid(environ):
    with pytest.raises(ConfigError):
        load_settings(environ)
