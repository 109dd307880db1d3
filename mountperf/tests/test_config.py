from configparser import ConfigParser

from mountperf.config import CacheConfig, Config, MonitorConfig


def test_monitor_config_defaults():
    parser = ConfigParser()
    parser.read_string("[monitor]")

    cfg = MonitorConfig.load(parser["monitor"])

    assert cfg.enabled
    assert cfg.max_operations == 1000
    assert cfg.max_network_samples == 100
    assert cfg.network_sample_interval == 60000


def test_monitor_config_load():
    parser = ConfigParser()
    parser.read_string(
        """
        [monitor]
        enabled = no
        max_operations = 10
        max_network_samples = 5
        network_sample_interval = 250
        """
    )

    cfg = MonitorConfig.load(parser["monitor"])

    assert not cfg.enabled
    assert cfg.max_operations == 10
    assert cfg.max_network_samples == 5
    assert cfg.network_sample_interval == 250


def test_cache_config_defaults():
    parser = ConfigParser()
    parser.read_string("[cache]")

    cfg = CacheConfig.load(parser["cache"])

    assert cfg.size_limit_mb == 50
    assert cfg.size_limit == 50 * 1024 * 1024
    assert cfg.ttl == 300000
    assert not cfg.prefetch
    assert not cfg.compression
    assert cfg.watch_excludes == []


def test_cache_config_load():
    parser = ConfigParser()
    parser.read_string(
        """
        [cache]
        size_limit_mb = 123
        ttl = 456
        prefetch = true
        compression = on
        watch_excludes = **/node_modules/**, **/.git/**
            *.log
        """
    )

    cfg = CacheConfig.load(parser["cache"])

    assert cfg.size_limit == 123 * 1024 * 1024
    assert cfg.ttl == 456
    assert cfg.prefetch
    assert cfg.compression
    assert cfg.watch_excludes == ["**/node_modules/**", "**/.git/**", "*.log"]


def test_config_defaults(tmpdir):
    cfg = Config.load(str(tmpdir / "nonexistent"))

    assert cfg.monitor == MonitorConfig()
    assert cfg.cache == CacheConfig()


def test_config_load(tmp_path):
    (tmp_path / "config").write_text(
        """
        [monitor]
        max_operations = 20

        [cache]
        ttl = 1000
        """
    )

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.monitor.max_operations == 20
    assert cfg.cache.ttl == 1000
    assert cfg.cache.size_limit_mb == 50


def test_config_load_failure_nonfatal(tmp_path):
    (tmp_path / "config").write_text("blabla")

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.cache is not None
    assert cfg.monitor is not None


def test_config_invalid_value_nonfatal(tmp_path):
    (tmp_path / "config").write_text(
        """
        [cache]
        ttl = forever
        """
    )

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.cache.ttl == 300000


def test_monitor_config_non_positive_values():
    parser = ConfigParser()
    parser.read_string(
        """
        [monitor]
        max_operations = 0
        max_network_samples = -5
        network_sample_interval = -1
        """
    )

    cfg = MonitorConfig.load(parser["monitor"])

    assert cfg.max_operations == 1000
    assert cfg.max_network_samples == 100
    assert cfg.network_sample_interval == 60000


def test_config_non_positive_value_nonfatal(tmp_path):
    (tmp_path / "config").write_text(
        """
        [monitor]
        max_operations = 0

        [cache]
        ttl = 1000
        """
    )

    cfg = Config.load(str(tmp_path / "config"))

    assert cfg.monitor.max_operations == 1000
    assert cfg.cache.ttl == 1000
