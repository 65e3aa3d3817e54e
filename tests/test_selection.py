"""Tests for the exclusion and admission decisions."""
import pytest

from clipfiles.core import (
    EntryKind,
    IgnoreRuleSet,
    SelectionPolicy,
    build_configuration,
)

DIR = EntryKind.DIRECTORY
FILE = EntryKind.FILE


def _policy(tmp_path, gitignore=(), **kwargs):
    kwargs.setdefault("extensions", [".js"])
    config = build_configuration(tmp_path, **kwargs)
    return SelectionPolicy(config, IgnoreRuleSet.parse(gitignore))


class TestExclusion:
    @pytest.mark.parametrize("path", ["node_modules", "web/node_modules", ".git", "build", "src/__pycache__"])
    def test_builtin_directories_are_pruned(self, tmp_path, path):
        assert _policy(tmp_path).excluded_by(path, DIR) == "built-in"

    @pytest.mark.parametrize(
        "path", ["package-lock.json", "web/yarn.lock", ".env", ".env.local", "app.min.js", "debug.log"]
    )
    def test_builtin_files_are_excluded(self, tmp_path, path):
        assert _policy(tmp_path).should_exclude(path, FILE)

    def test_regular_source_is_not_excluded(self, tmp_path):
        policy = _policy(tmp_path)
        assert not policy.should_exclude("src", DIR)
        assert not policy.should_exclude("src/app.js", FILE)

    def test_user_patterns_are_added_to_builtins(self, tmp_path):
        policy = _policy(tmp_path, exclude_patterns=["**/generated/**", "*.spec.js"])
        assert policy.excluded_by("src/generated", DIR) == "--exclude"
        assert policy.excluded_by("app.spec.js", FILE) == "--exclude"
        assert policy.excluded_by("node_modules", DIR) == "built-in"

    def test_gitignore_rules_exclude(self, tmp_path):
        policy = _policy(tmp_path, gitignore=["secret/", "*.txt", "!keep.txt"])
        assert policy.excluded_by("secret", DIR) == ".gitignore"
        assert policy.should_exclude("notes.txt", FILE)
        assert not policy.should_exclude("keep.txt", FILE)

    def test_extglob_user_pattern(self, tmp_path):
        policy = _policy(tmp_path, exclude_patterns=["**/*.@(spec|test).js"])
        assert policy.should_exclude("src/a.spec.js", FILE)
        assert policy.should_exclude("a.test.js", FILE)
        assert not policy.should_exclude("src/a.js", FILE)

    def test_gitignore_negation_cannot_undo_glob_exclusion(self, tmp_path):
        policy = _policy(tmp_path, gitignore=["!vendor/", "!keep.log"], exclude_patterns=["extra.js"])
        assert policy.should_exclude("vendor", DIR)
        assert policy.should_exclude("keep.log", FILE)
        assert policy.should_exclude("extra.js", FILE)


class TestAdmission:
    def test_extension_suffix(self, tmp_path):
        policy = _policy(tmp_path, extensions=[".js", ".go"])
        assert policy.should_admit("a.js", FILE)
        assert policy.should_admit("pkg/main.go", FILE)
        assert not policy.should_admit("b.txt", FILE)

    def test_only_files_are_admitted(self, tmp_path):
        policy = _policy(tmp_path)
        assert not policy.should_admit("lib.js", DIR)
        assert not policy.should_admit("link.js", EntryKind.OTHER)

    def test_include_by_name_at_any_depth(self, tmp_path):
        policy = _policy(tmp_path, extensions=[], include_names=["Dockerfile"])
        assert policy.should_admit("Dockerfile", FILE)
        assert policy.should_admit("services/api/Dockerfile", FILE)
        assert not policy.should_admit("Dockerfile.dev", FILE)

    def test_include_by_relative_path(self, tmp_path):
        policy = _policy(tmp_path, extensions=[], include_names=["./config/app.cfg"])
        assert policy.should_admit("config/app.cfg", FILE)
        assert not policy.should_admit("other/app.cfg", FILE)

    def test_include_by_glob(self, tmp_path):
        policy = _policy(tmp_path, extensions=[], include_names=["Makefile*", "scripts/*.sh"])
        assert policy.should_admit("Makefile.am", FILE)
        assert policy.should_admit("scripts/run.sh", FILE)
        assert not policy.should_admit("tools/run.sh", FILE)

    def test_include_by_absolute_path(self, tmp_path):
        target = tmp_path.resolve() / "conf" / "settings.ini"
        policy = _policy(tmp_path, extensions=[], include_names=[str(target)])
        assert policy.should_admit("conf/settings.ini", FILE)
        assert not policy.should_admit("settings.ini", FILE)

    def test_extension_or_include(self, tmp_path):
        policy = _policy(tmp_path, extensions=[".yaml"], include_names=["Dockerfile"])
        assert policy.should_admit("deploy.yaml", FILE)
        assert policy.should_admit("Dockerfile", FILE)
        assert not policy.should_admit("README.md", FILE)

    def test_include_by_absolute_glob(self, tmp_path):
        pattern = (tmp_path.resolve() / "**" / "Dockerfile").as_posix()
        policy = _policy(tmp_path, extensions=[], include_names=[pattern])
        assert policy.should_admit("Dockerfile", FILE)
        assert policy.should_admit("services/api/Dockerfile", FILE)
        assert not policy.should_admit("services/api/Makefile", FILE)
