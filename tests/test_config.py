import pytest
from pydantic import ValidationError

# ======= Execute with: pytest tests/test_config.py ========

from uconsole_image.config.models import BuildConfig
from uconsole_image.utils.exceptions import ConfigError


def test_defaults_match_stock_build():
    config = BuildConfig()

    assert config.image.image_size == "8G"
    assert config.image.boot_size == "512M"
    assert config.rootfs.url == "http://os.archlinuxarm.org/os/ArchLinuxARM-aarch64-latest.tar.gz"
    assert config.system.hostname == "uconsole"
    assert config.user.name == "uconsole"
    assert config.user.password.get_secret_value() == "uconsole"
    assert config.user.groups == ["wheel", "video", "audio", "input"]
    assert config.packages.repository.name == "petercxy"
    assert config.packages.repository.server == "https://s3-cdn.angry.im/alarm-repo/$arch"
    assert config.packages.services == ["NetworkManager", "bluetooth", "sshd"]
    assert "sway" in config.packages.desktop


def test_password_hidden_in_repr():
    assert "uconsole" not in repr(BuildConfig().user.password)


@pytest.mark.parametrize("size", ["8G", "512M", "1024K", "1T", "16g"])
def test_valid_sizes(size):
    assert BuildConfig(image={"image_size": size}).image.image_size == size


@pytest.mark.parametrize("size", ["", "8", "G", "8GB", "-1G", "1.5G"])
def test_invalid_sizes(size):
    with pytest.raises(ValidationError):
        BuildConfig(image={"image_size": size})


def test_load_partial_toml(tmp_path):
    path = tmp_path / "build.toml"
    path.write_text(
        '[image]\n'
        'image_size = "16G"\n'
        '\n'
        '[user]\n'
        'name = "alice"\n'
        'password = "wonderland"\n'
        '\n'
        '[packages]\n'
        'optional = []\n'
    )

    config = BuildConfig.load_config_from_file(path)

    assert config.image.image_size == "16G"
    assert config.image.boot_size == "512M"
    assert config.user.name == "alice"
    assert config.user.password.get_secret_value() == "wonderland"
    assert config.packages.optional == []
    assert config.packages.kernel == ["linux-clockworkpi-git", "linux-clockworkpi-git-headers"]


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Error reading"):
        BuildConfig.load_config_from_file(tmp_path / "nope.toml")


def test_invalid_toml(tmp_path):
    path = tmp_path / "build.toml"
    path.write_text("[image\nimage_size = 8G\n")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        BuildConfig.load_config_from_file(path)


def test_invalid_values(tmp_path):
    path = tmp_path / "build.toml"
    path.write_text('[image]\nboot_size = "half"\n')

    with pytest.raises(ConfigError, match="Invalid configuration"):
        BuildConfig.load_config_from_file(path)


def test_display_summary():
    summary = BuildConfig().display_summary("/dev/sdb")

    assert "BUILD PLAN" in summary
    assert "/dev/sdb" in summary
    assert "512M" in summary
    assert "[petercxy]" in summary
    assert "uconsole" in summary
