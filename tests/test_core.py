"""
Tests for the core update pipeline: resource scheduling, byte comparison and install.
"""

import os
import stat
from unittest.mock import patch

import pytest

from ironsync.core.compare import compare_files, files_equal
from ironsync.core.install import install_staging_file
from ironsync.core.resource import DEFAULT_PERMS, Resource
from ironsync.exceptions import ComparisonError, InstallError
from ironsync.utils.permissions import apply_permissions, resolve_gid, resolve_uid, stat_existing_file


def mode_of(path):
    return stat.S_IMODE(os.stat(path).st_mode)


@pytest.mark.unit
class TestResource:
    """Test resource scheduling state."""

    def test_new_resource_is_due(self):
        res = Resource(path="/etc/a")
        assert res.is_due(0.0)
        assert res.last_update_time is None

    def test_schedule_next(self):
        res = Resource(path="/etc/a", interval=60)
        res.schedule_next(1_000.0, res.interval)
        assert res.next_update_time == 1_060.0
        assert not res.is_due(1_059.9)
        assert res.is_due(1_060.0)

    def test_mark_updated(self):
        res = Resource(path="/etc/a")
        res.mark_updated(42.0)
        assert res.last_update_time == 42.0

    def test_effective_mode(self, tmp_path):
        path = tmp_path / "f"
        assert Resource(path=str(path)).effective_mode() == DEFAULT_PERMS
        path.write_text("x")
        os.chmod(path, 0o600)
        assert Resource(path=str(path)).effective_mode() == 0o600
        assert Resource(path=str(path), perms=0o640).effective_mode() == 0o640


@pytest.mark.unit
class TestCompare:
    """Test byte-for-byte comparison."""

    def write(self, tmp_path, name, data):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    def test_equal(self, tmp_path):
        a = self.write(tmp_path, "a", b"0123456789")
        b = self.write(tmp_path, "b", b"0123456789")
        assert files_equal(a, b, chunk_size=4)

    def test_empty_files_equal(self, tmp_path):
        assert files_equal(self.write(tmp_path, "a", b""), self.write(tmp_path, "b", b""))

    def test_one_byte_differs(self, tmp_path):
        a = self.write(tmp_path, "a", b"0123456789")
        b = self.write(tmp_path, "b", b"0123456780")
        assert not files_equal(a, b, chunk_size=4)

    def test_prefix_is_not_equal(self, tmp_path):
        a = self.write(tmp_path, "a", b"01234567")
        b = self.write(tmp_path, "b", b"0123456789")
        assert not files_equal(a, b, chunk_size=4)
        assert not files_equal(b, a, chunk_size=4)

    def test_missing_file_is_different(self, tmp_path):
        a = self.write(tmp_path, "a", b"x")
        assert not files_equal(a, str(tmp_path / "missing"))

    def test_compare_files_raises(self, tmp_path):
        with pytest.raises(ComparisonError):
            compare_files(str(tmp_path / "x"), str(tmp_path / "y"))


class TestPermissions:
    """Test ownership and mode helpers."""

    def test_stat_missing(self, tmp_path):
        assert stat_existing_file(str(tmp_path / "nope")) is None

    def test_resolve_not_given(self):
        assert resolve_uid(None) == -1
        assert resolve_gid("") == -1

    def test_resolve_numeric(self):
        assert resolve_uid("4242424") == 4242424
        assert resolve_gid("4242424") == 4242424

    def test_resolve_unknown_name(self):
        with pytest.raises(InstallError, match="Unknown user"):
            resolve_uid("no-such-user-ironsync")
        with pytest.raises(InstallError, match="Unknown group"):
            resolve_gid("no-such-group-ironsync")

    def test_apply_mode_only(self, tmp_path):
        path = tmp_path / "f"
        path.write_text("x")
        with patch("ironsync.utils.permissions.os.chown") as chown:
            apply_permissions(str(path), None, None, 0o640)
        chown.assert_not_called()
        assert mode_of(path) == 0o640

    def test_apply_owner(self, tmp_path):
        path = tmp_path / "f"
        path.write_text("x")
        with patch("ironsync.utils.permissions.os.chown") as chown:
            apply_permissions(str(path), "1234", None, 0o644)
        chown.assert_called_once_with(str(path), 1234, -1)

    def test_chown_failure(self, tmp_path):
        path = tmp_path / "f"
        path.write_text("x")
        with patch("ironsync.utils.permissions.os.chown", side_effect=PermissionError("not root")):
            with pytest.raises(InstallError, match="Setting file permissions failed"):
                apply_permissions(str(path), "1234", "1234", 0o644)


class TestInstall:
    """Test atomic install of staging files."""

    def staging(self, staging_dir, data=b"new\n"):
        path = staging_dir / "web-abc123"
        path.write_bytes(data)
        return str(path)

    def test_new_file_gets_default_mode(self, staging_dir, dest_dir):
        dest = dest_dir / "motd"
        staging = self.staging(staging_dir)
        install_staging_file(staging, Resource(path=str(dest)))

        assert dest.read_bytes() == b"new\n"
        assert mode_of(dest) == 0o664
        assert not os.path.exists(staging)

    def test_existing_mode_is_inherited(self, staging_dir, dest_dir):
        dest = dest_dir / "motd"
        dest.write_bytes(b"old\n")
        os.chmod(dest, 0o600)
        install_staging_file(self.staging(staging_dir), Resource(path=str(dest)))

        assert dest.read_bytes() == b"new\n"
        assert mode_of(dest) == 0o600

    def test_declared_perms_win(self, staging_dir, dest_dir):
        dest = dest_dir / "motd"
        dest.write_bytes(b"old\n")
        os.chmod(dest, 0o600)
        install_staging_file(self.staging(staging_dir), Resource(path=str(dest), perms=0o644))

        assert mode_of(dest) == 0o644

    def test_unknown_user_leaves_destination_untouched(self, staging_dir, dest_dir):
        dest = dest_dir / "motd"
        dest.write_bytes(b"old\n")
        staging = self.staging(staging_dir)

        with pytest.raises(InstallError, match="Unknown user"):
            install_staging_file(staging, Resource(path=str(dest), user="no-such-user-ironsync"))

        assert dest.read_bytes() == b"old\n"
        assert not os.path.exists(staging)

    def test_missing_destination_directory(self, staging_dir, tmp_path):
        staging = self.staging(staging_dir)
        with pytest.raises(InstallError, match="Destination directory does not exist"):
            install_staging_file(staging, Resource(path=str(tmp_path / "nope" / "motd")))
        assert not os.path.exists(staging)

    def test_cross_filesystem_copies_beside_destination(self, staging_dir, dest_dir):
        dest = dest_dir / "motd"
        staging = self.staging(staging_dir)
        with patch("ironsync.core.install._same_filesystem", return_value=False):
            install_staging_file(staging, Resource(path=str(dest)))

        assert dest.read_bytes() == b"new\n"
        assert not os.path.exists(staging)
        assert sorted(p.name for p in dest_dir.iterdir()) == ["motd"]

    def test_rename_failure(self, staging_dir, dest_dir):
        staging = self.staging(staging_dir)
        with patch("ironsync.core.install.os.replace", side_effect=OSError("read-only file system")):
            with pytest.raises(InstallError, match="Moving file failed"):
                install_staging_file(staging, Resource(path=str(dest_dir / "motd")))
        assert not os.path.exists(staging)
