from __future__ import annotations

from pathlib import Path

from appsys.config.inspector import check_config


def test_check_config_ok_without_warnings(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        """
[databases.target]
url = "sqlite:///target.sqlite3"

[databases.legacy_mysql]
url = "sqlite:///legacy.sqlite3"
""",
        encoding="utf-8",
    )

    result, exit_code, config = check_config(config_file)

    assert exit_code == 0
    assert result["status"] == "ok"
    assert result["warnings"] == []
    assert config is not None


def test_check_config_warns_about_connections(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        """
[databases.other]
url = "sqlite://"
echo = true
""",
        encoding="utf-8",
    )

    result, exit_code, _ = check_config(config_file)

    assert exit_code == 0
    assert len(result["warnings"]) == 3
    assert any("Target connection 'target'" in warning for warning in result["warnings"])
    assert any("legacy connection 'legacy_mysql'" in warning for warning in result["warnings"])
    assert any("echo enabled" in warning for warning in result["warnings"])


def test_check_config_error_codes(tmp_path: Path) -> None:
    missing = tmp_path / "absent.toml"
    invalid = tmp_path / "invalid.toml"
    invalid.write_text("logging_level = [", encoding="utf-8")
    rejected = tmp_path / "rejected.toml"
    rejected.write_text("[migration]\nchunk_size = 0\n", encoding="utf-8")

    missing_result, missing_code, _ = check_config(missing)
    invalid_result, invalid_code, _ = check_config(invalid)
    rejected_result, rejected_code, _ = check_config(rejected)

    assert (missing_code, missing_result["error"]["type"]) == (2, "missing_file")
    assert (invalid_code, invalid_result["error"]["type"]) == (1, "invalid_format")
    assert (rejected_code, rejected_result["error"]["type"]) == (3, "validation_error")
    assert rejected_result["error"]["details"][0]["loc"] == "migration.chunk_size"
