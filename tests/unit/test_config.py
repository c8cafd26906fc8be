"""
Tests for sysperf.config module.

Tests cover:
- Environment variable handling (check_env)
- Datetime string generation
- Enum values and helpers
- FioSettings validation
- YAML config file loading
"""

import re

import pytest

from sysperf.config import (
    CATALOGS,
    EXIT_CODE,
    FioSettings,
    IO_PATTERN,
    SysPerfConfig,
    TELEMETRY_PHASE,
    check_env,
    get_datetime_string,
    load_config_file,
)
from sysperf.errors import ConfigurationError, ErrorCode


class TestCheckEnv:
    """Tests for check_env function."""

    def test_returns_default_when_env_not_set(self, clean_env):
        """check_env returns default value when env var is not set."""
        assert check_env('SYSPERF_NONEXISTENT', 'default_value') == 'default_value'

    def test_returns_env_value_when_set(self, clean_env):
        """check_env returns environment value when set."""
        clean_env.setenv('SYSPERF_TEST_VAR', 'env_value')
        assert check_env('SYSPERF_TEST_VAR', 'default_value') == 'env_value'

    def test_converts_string_true_to_boolean(self, clean_env):
        """check_env converts 'True' in any case to boolean True."""
        clean_env.setenv('SYSPERF_TEST_BOOL', 'True')
        assert check_env('SYSPERF_TEST_BOOL', False) is True

    def test_converts_string_false_to_boolean(self, clean_env):
        clean_env.setenv('SYSPERF_TEST_BOOL', 'false')
        assert check_env('SYSPERF_TEST_BOOL', True) is False

    def test_casts_to_default_type(self, clean_env):
        clean_env.setenv('SYSPERF_TEST_INT', '42')
        assert check_env('SYSPERF_TEST_INT', 7) == 42

    def test_bad_cast_falls_back_to_default(self, clean_env):
        clean_env.setenv('SYSPERF_TEST_INT', 'many')
        assert check_env('SYSPERF_TEST_INT', 7) == 7


class TestDatetimeString:

    def test_format(self):
        assert re.match(r"^\d{8}_\d{6}$", get_datetime_string())


class TestEnums:
    """Tests for enum helpers."""

    def test_exit_code_str(self):
        assert str(EXIT_CODE.CONFIG_ERROR) == "CONFIG_ERROR (4)"

    @pytest.mark.parametrize("pattern, mixed, random", [
        (IO_PATTERN.RANDRW, True, True),
        (IO_PATTERN.RW, True, False),
        (IO_PATTERN.RANDREAD, False, True),
        (IO_PATTERN.WRITE, False, False),
    ])
    def test_io_pattern_properties(self, pattern, mixed, random):
        assert pattern.is_mixed is mixed
        assert pattern.is_random is random

    def test_values(self):
        assert CATALOGS.values() == ["ai", "traditional", "all"]
        assert TELEMETRY_PHASE.values() == ["before", "during", "after"]
        assert "randrw" in IO_PATTERN.values()


class TestFioSettings:
    """Tests for FioSettings."""

    def test_defaults(self):
        settings = FioSettings()
        assert settings.ioengine == "io_uring"
        assert settings.direct is True
        assert settings.size == "256G"
        assert settings.numjobs == 16
        assert settings.iodepth == 128
        assert settings.runtime == 600

    @pytest.mark.parametrize("field_name", ["numjobs", "iodepth", "runtime"])
    def test_non_positive_rejected(self, field_name):
        with pytest.raises(ConfigurationError):
            FioSettings(**{field_name: 0})

    def test_string_rejected(self):
        with pytest.raises(ConfigurationError):
            FioSettings(numjobs="4")


class TestLoadConfigFile:
    """Tests for YAML config loading."""

    def test_no_path_returns_defaults(self):
        config = load_config_file(None)
        assert isinstance(config, SysPerfConfig)
        assert config.results_dir is None
        assert config.fio == FioSettings()

    def test_sections_applied(self, tmp_path):
        path = tmp_path / "sysperf.yaml"
        path.write_text(
            "general:\n"
            "  log_level: DEBUG\n"
            "  benchmark_dir: /mnt/nvme/bench\n"
            "fio:\n"
            "  numjobs: 4\n"
            "  ioengine: libaio\n"
        )

        config = load_config_file(str(path))

        assert config.log_level == "DEBUG"
        assert config.benchmark_dir == "/mnt/nvme/bench"
        assert config.results_dir is None
        assert config.fio.numjobs == 4
        assert config.fio.ioengine == "libaio"
        assert config.fio.iodepth == 128

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config_file(str(path)).fio == FioSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config_file(str(tmp_path / "missing.yaml"))
        assert exc_info.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("fio: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config_file(str(path))
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- fio\n- iostat\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config_file(str(path))
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    @pytest.mark.parametrize("text", [
        "benchmarks:\n  x: 1\n",
        "general:\n  colour: blue\n",
        "fio:\n  blocksize: 4k\n",
    ])
    def test_unknown_keys(self, tmp_path, text):
        path = tmp_path / "unknown.yaml"
        path.write_text(text)
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))

    def test_invalid_fio_value(self, tmp_path):
        path = tmp_path / "bad_value.yaml"
        path.write_text("fio:\n  runtime: 0\n")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))
