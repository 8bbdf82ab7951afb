from pathlib import Path

import pytest

from winlaunch.config import _deep_merge, build_node, load_config, resolve_node
from winlaunch.exceptions import ConfigurationError
from winlaunch.types import DEFAULT_TMP_DIR

pytestmark = [pytest.mark.xdist_group("unit")]


class TestDeepMerge:
    def test_shallow_override(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3}
        assert _deep_merge(base, override) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"nodes": {"win": {"remote_admin": "Administrator", "boot_delay": 60}}}
        override = {"nodes": {"win": {"boot_delay": 30}}}
        result = _deep_merge(base, override)
        assert result == {"nodes": {"win": {"remote_admin": "Administrator", "boot_delay": 30}}}

    def test_override_adds_new_keys(self):
        base = {"nodes": {"a": {"boot_delay": 1}}}
        override = {"nodes": {"b": {"boot_delay": 2}}}
        result = _deep_merge(base, override)
        assert result == {"nodes": {"a": {"boot_delay": 1}, "b": {"boot_delay": 2}}}

    def test_base_is_not_mutated(self):
        base = {"nodes": {"a": {"boot_delay": 1}}}
        _deep_merge(base, {"nodes": {"a": {"boot_delay": 2}}})
        assert base == {"nodes": {"a": {"boot_delay": 1}}}


class TestLoadConfig:
    def test_project_only(self, tmp_path: Path):
        (tmp_path / "winlaunch.toml").write_text('[nodes.dev]\nremote_admin = "Administrator"\n')
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result["nodes"]["dev"]["remote_admin"] == "Administrator"

    def test_merge_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[nodes.build]\nlaunch_timeout = 300\nuse_https = true\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "winlaunch.toml").write_text("[nodes.build]\nlaunch_timeout = 900\n")

        result = load_config(project_dir=project_dir, global_path=global_toml)

        assert result["nodes"]["build"] == {"launch_timeout": 900, "use_https": True}

    def test_no_files_returns_empty_nodes(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path / "nope", global_path=tmp_path / "nope.toml")
        assert result == {"nodes": {}}


class TestBuildNode:
    def test_defaults(self):
        node = build_node("win", {"remote_admin": "Administrator", "password": "pw"})

        assert node.name == "win"
        assert node.credential.username == "Administrator"
        assert node.credential.password == "pw"
        assert node.tmp_dir == DEFAULT_TMP_DIR
        assert node.launch_timeout == 300.0
        assert node.boot_delay == 60.0
        assert node.init_script is None

    def test_password_from_environment(self):
        node = build_node(
            "win",
            {"remote_admin": "Administrator", "password_env": "WIN_PW"},
            environ={"WIN_PW": "from-env"},
        )
        assert node.credential.password == "from-env"

    def test_password_not_in_repr(self):
        node = build_node("win", {"remote_admin": "Administrator", "password": "hunter2"})
        assert "hunter2" not in repr(node)

    def test_missing_env_var(self):
        with pytest.raises(ConfigurationError, match="WIN_PW"):
            build_node(
                "win", {"remote_admin": "Administrator", "password_env": "WIN_PW"}, environ={},
            )

    def test_missing_password(self):
        with pytest.raises(ConfigurationError, match="password"):
            build_node("win", {"remote_admin": "Administrator"}, environ={})

    def test_missing_admin(self):
        with pytest.raises(ConfigurationError, match="remote_admin"):
            build_node("win", {"password": "pw"})

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError, match="ami"):
            build_node("win", {"remote_admin": "a", "password": "pw", "ami": "ami-123"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError, match="launch_timeout"):
            build_node("win", {"remote_admin": "a", "password": "pw", "launch_timeout": 0})

    def test_negative_boot_delay(self):
        with pytest.raises(ConfigurationError, match="boot_delay"):
            build_node("win", {"remote_admin": "a", "password": "pw", "boot_delay": -1})


class TestResolveNode:
    def test_full_node(self, tmp_path: Path):
        (tmp_path / "winlaunch.toml").write_text(
            '[nodes.win-builder]\n'
            'remote_admin = "Administrator"\n'
            'password_env = "BUILDER_PW"\n'
            'use_private_address = true\n'
            'use_https = true\n'
            'init_script = "choco install -y temurin17"\n'
            'runtime_options = "-Xmx2g"\n'
            'launch_timeout = 600\n'
            'boot_delay = 30\n'
            'stop_on_terminate = true\n'
        )

        node = resolve_node(
            "win-builder",
            project_dir=tmp_path,
            global_path=tmp_path / "none.toml",
            environ={"BUILDER_PW": "s3cret"},
        )

        assert node.use_private_address
        assert node.use_https
        assert node.stop_on_terminate
        assert node.launch_timeout == 600
        assert node.boot_delay == 30
        assert node.agent_command == 'java -Xmx2g -jar "C:\\Windows\\Temp\\agent.jar"'

    def test_global_credential_shared_by_project_nodes(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[nodes.ci]\nremote_admin = "Administrator"\npassword = "pw"\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "winlaunch.toml").write_text('[nodes.ci]\ntmp_dir = "D:\\\\ci"\n')

        node = resolve_node("ci", project_dir=project_dir, global_path=global_toml)

        assert node.credential.password == "pw"
        assert node.tmp_dir == "D:\\ci"

    def test_unknown_node(self, tmp_path: Path):
        with pytest.raises(KeyError, match="not found"):
            resolve_node("missing", project_dir=tmp_path, global_path=tmp_path / "none.toml")
