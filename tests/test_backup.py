import tempfile
import unittest
import unittest.mock
from datetime import datetime
from pathlib import Path

from sshd_agent import backup
from sshd_agent.backup import BackupGuard, create_backup, list_backups, restore_from_backup, verify_backup
from sshd_agent.errors import BackupFailure, PatchPersistFailure, RestoreFailure

NOW = datetime(2024, 1, 2, 3, 4, 5)
ORIGINAL = b"Port 22\r\nPasswordAuthentication yes\r\n"


class BackupTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.dir = Path(self._td.name)
        self.config = self.dir / "sshd_config"
        self.config.write_bytes(ORIGINAL)


class TestCreateBackup(BackupTestCase):
    def test_copy_is_byte_identical_and_named(self):
        b = create_backup(self.config, NOW)
        self.assertEqual(b.source, str(self.config))
        self.assertEqual(b.path, str(self.config) + ".backup_20240102_030405")
        self.assertEqual(Path(b.path).read_bytes(), ORIGINAL)
        self.assertTrue(verify_backup(b.path))

    def test_same_second_backups_do_not_collide(self):
        first = create_backup(self.config, NOW)
        second = create_backup(self.config, NOW)
        self.assertNotEqual(first.path, second.path)
        self.assertTrue(second.path.endswith("_1"))

    def test_missing_config(self):
        with self.assertRaises(BackupFailure):
            create_backup(self.dir / "absent", NOW)

    def test_empty_config_fails_verification(self):
        self.config.write_bytes(b"")
        with self.assertRaises(BackupFailure):
            create_backup(self.config, NOW)

    def test_copy_permission_error(self):
        with unittest.mock.patch("sshd_agent.backup.shutil.copy2", side_effect=PermissionError("denied")):
            with self.assertRaises(BackupFailure) as ctx:
                create_backup(self.config, NOW)
        self.assertIn("sudo", str(ctx.exception))


class TestRestoreAndList(BackupTestCase):
    def test_restore_roundtrip(self):
        b = create_backup(self.config, NOW)
        self.config.write_bytes(b"garbage")
        restore_from_backup(b.path, self.config)
        self.assertEqual(self.config.read_bytes(), ORIGINAL)

    def test_restore_missing_backup(self):
        with self.assertRaises(FileNotFoundError):
            restore_from_backup(self.dir / "nope", self.config)

    def test_list_newest_first(self):
        older = create_backup(self.config, datetime(2023, 5, 1, 0, 0, 0))
        newer = create_backup(self.config, NOW)
        (self.dir / "unrelated.txt").write_text("x")
        self.assertEqual(list_backups(self.config), [newer.path, older.path])

    def test_list_without_backups(self):
        self.assertEqual(list_backups(self.config), [])


class TestBackupGuard(BackupTestCase):
    def test_failure_inside_block_restores_original(self):
        guard = BackupGuard(self.config, now=NOW)
        with self.assertRaises(PatchPersistFailure):
            with guard as b:
                self.config.write_bytes(b"half written")
                raise PatchPersistFailure("disk full")
        self.assertTrue(guard.restored)
        self.assertEqual(self.config.read_bytes(), ORIGINAL)
        self.assertTrue(Path(b.path).exists())

    def test_clean_exit_keeps_changes(self):
        guard = BackupGuard(self.config, now=NOW)
        with guard as b:
            self.config.write_bytes(b"Port 2222\n")
        self.assertFalse(guard.restored)
        self.assertEqual(self.config.read_bytes(), b"Port 2222\n")
        self.assertEqual(Path(b.path).read_bytes(), ORIGINAL)

    def test_backup_failure_leaves_config_untouched(self):
        entered = []
        with unittest.mock.patch("sshd_agent.backup.shutil.copy2", side_effect=OSError("ro fs")):
            with self.assertRaises(BackupFailure):
                with BackupGuard(self.config, now=NOW):
                    entered.append(True)
        self.assertEqual(entered, [])
        self.assertEqual(self.config.read_bytes(), ORIGINAL)

    def test_failed_restore_names_manual_command(self):
        guard = BackupGuard(self.config, now=NOW)
        with unittest.mock.patch.object(backup, "restore_from_backup", side_effect=OSError("ro fs")):
            with self.assertRaises(RestoreFailure) as ctx:
                with guard:
                    raise PatchPersistFailure("disk full")
        self.assertFalse(guard.restored)
        self.assertEqual(ctx.exception.backup_path, guard.backup.path)
        self.assertIn(f"sudo cp {guard.backup.path} {self.config}", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
