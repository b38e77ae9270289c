"""
Unit tests for file_utils module.
"""

from team_hierarchy.utils import file_utils


class TestEnsureDirectory:
    """Tests for ensure_directory function."""

    def test_create_new_directory(self, tmp_path):
        """Test creating a new directory."""
        new_dir = tmp_path / "test_dir"
        assert not new_dir.exists()

        file_utils.ensure_directory(str(new_dir))

        assert new_dir.exists()
        assert new_dir.is_dir()

    def test_create_nested_directories(self, tmp_path):
        """Test creating nested directories."""
        nested_dir = tmp_path / "level1" / "level2" / "level3"

        file_utils.ensure_directory(str(nested_dir))

        assert nested_dir.exists()

    def test_existing_directory_no_error(self, tmp_path):
        """Test that existing directory doesn't raise error."""
        existing_dir = tmp_path / "existing"
        existing_dir.mkdir()

        # Should not raise
        file_utils.ensure_directory(str(existing_dir))


class TestAtomicWrite:
    """Tests for atomic_write function."""

    def test_writes_content(self, tmp_path):
        target = tmp_path / "out.json"

        file_utils.atomic_write(str(target), '{"kind": "hierarchy"}')

        assert target.read_text(encoding="utf-8") == '{"kind": "hierarchy"}'

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "exports" / "2026" / "layout.json"

        file_utils.atomic_write(str(target), "[]")

        assert target.exists()

    def test_replaces_existing_file_without_leftovers(self, tmp_path):
        """Test that overwriting leaves no temporary files behind."""
        target = tmp_path / "out.txt"
        target.write_text("old")

        file_utils.atomic_write(str(target), "new")

        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["out.txt"]
