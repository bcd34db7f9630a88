"""
Tests for the remote transfer client and its FTP/SFTP/in-memory backends.
"""

import ftplib
import stat
from unittest.mock import MagicMock, patch

import pytest

from interchange.config.settings import RemoteSettings
from interchange.exceptions import ConfigurationError, InterchangeConnectionError, TransferError
from interchange.retry import RetryManager, RetryPolicy
from interchange.transfer import FTPBackend, MemoryBackend, RemoteTransferClient, build_backend

from conftest import BASE, FROM_PARTNER, TO_PARTNER


class TestResolve:
    def test_relative_to_base(self, client):
        assert client.resolve(TO_PARTNER, "EXP_1.txt") == f"{BASE}/{TO_PARTNER}/EXP_1.txt"

    def test_strips_slashes_and_empty_parts(self, client):
        assert client.resolve("/from_partner/", "", "completed/") == f"{BASE}/from_partner/completed"

    def test_base_only(self, client):
        assert client.resolve("") == BASE

    def test_no_base(self, backend):
        bare = RemoteTransferClient(backend)
        assert bare.resolve() == "/"
        assert bare.resolve("in", "a.txt") == "/in/a.txt"


class TestRemoteTransferClient:
    """Retry and error translation on top of MemoryBackend."""

    def test_upload(self, client, backend, tmp_path):
        local = tmp_path / "EXP_1.txt"
        local.write_bytes(b"line\n")
        client.upload(local, f"{TO_PARTNER}/EXP_1.txt")
        assert backend.files[f"{BASE}/{TO_PARTNER}/EXP_1.txt"] == b"line\n"

    def test_upload_retries_then_succeeds(self, client, backend, sleeps, tmp_path):
        local = tmp_path / "EXP_1.txt"
        local.write_bytes(b"x")
        backend.fail_next("upload", times=2)
        client.upload(local, f"{TO_PARTNER}/EXP_1.txt")
        assert len(backend.calls("upload")) == 3
        assert sleeps == [0.5, 0.5]

    def test_upload_exhaustion_raises_transfer_error(self, client, backend, sleeps, tmp_path):
        local = tmp_path / "EXP_1.txt"
        local.write_bytes(b"x")
        cause = OSError("452 insufficient storage")
        backend.fail_next("upload", times=3, error=cause)
        with pytest.raises(TransferError) as exc_info:
            client.upload(local, f"{TO_PARTNER}/EXP_1.txt")
        assert exc_info.value.operation == "upload"
        assert exc_info.value.target == f"{BASE}/{TO_PARTNER}/EXP_1.txt"
        assert exc_info.value.cause is cause
        assert exc_info.value.attempts == 3
        assert exc_info.value.details["attempts"] == 3
        assert len(sleeps) == 2
        assert f"{BASE}/{TO_PARTNER}/EXP_1.txt" not in backend.files

    def test_download_writes_final_file(self, client, backend, tmp_path):
        backend.put_file(f"{BASE}/{FROM_PARTNER}/IMP_1.txt", b"payload")
        target = tmp_path / "staging" / "IMP_1.txt"
        client.download(f"{FROM_PARTNER}/IMP_1.txt", target)
        assert target.read_bytes() == b"payload"
        assert not (tmp_path / "staging" / "IMP_1.txt.part").exists()

    def test_download_failure_leaves_no_partial_file(self, client, tmp_path):
        target = tmp_path / "IMP_missing.txt"
        with pytest.raises(TransferError):
            client.download(f"{FROM_PARTNER}/IMP_missing.txt", target)
        assert list(tmp_path.iterdir()) == []

    def test_list(self, client, backend):
        backend.put_file(f"{BASE}/{FROM_PARTNER}/b.txt", b"")
        backend.put_file(f"{BASE}/{FROM_PARTNER}/a.txt", b"")
        backend.add_dir(f"{BASE}/{FROM_PARTNER}/completed")
        assert client.list(FROM_PARTNER) == ["a.txt", "b.txt"]

    def test_list_missing_dir(self, client):
        with pytest.raises(TransferError) as exc_info:
            client.list("nowhere")
        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_move_and_ensure_dir(self, client, backend):
        backend.put_file(f"{BASE}/{FROM_PARTNER}/a.txt", b"1")
        client.ensure_dir(f"{FROM_PARTNER}/completed")
        client.move(f"{FROM_PARTNER}/a.txt", f"{FROM_PARTNER}/completed/a.txt")
        assert f"{BASE}/{FROM_PARTNER}/completed/a.txt" in backend.files
        assert f"{BASE}/{FROM_PARTNER}/a.txt" not in backend.files

    def test_failed_attempt_resets_session(self):
        backend = MagicMock()
        backend.name = "mock"
        backend.list_names.side_effect = [OSError("timeout"), ["a.txt"]]
        retrying = RemoteTransferClient(backend, RetryPolicy(2, 0), retry_manager=RetryManager(sleep=lambda s: None))
        assert retrying.list("in") == ["a.txt"]
        backend.reset.assert_called_once()

    def test_connect_failure(self, backend, sleeps):
        backend.fail_next("connect", times=2)
        flaky = RemoteTransferClient(backend, RetryPolicy(2, 1), retry_manager=RetryManager(sleep=sleeps.append))
        with pytest.raises(InterchangeConnectionError, match="Cannot connect to memory"):
            flaky.connect()
        assert sleeps == [1]

    def test_context_manager(self, backend):
        with RemoteTransferClient(backend) as c:
            assert c.backend.connected
        assert not backend.connected


def ftp_settings(**overrides) -> RemoteSettings:
    values = dict(host="ftp.partner.example", username="exchange", password="s3cret", timeout_s=10)
    values.update(overrides)
    return RemoteSettings(**values)


class TestFTPBackend:
    """FTPBackend against a mocked ftplib.FTP."""

    def make(self, **overrides):
        ftp = MagicMock()
        ftp.pwd.return_value = "/"
        return FTPBackend(ftp_settings(**overrides), ftp_factory=lambda: ftp), ftp

    def test_login_with_credentials(self):
        backend, ftp = self.make()
        backend.connect()
        ftp.connect.assert_called_once_with("ftp.partner.example", 21, timeout=10)
        ftp.login.assert_called_once_with(user="exchange", passwd="s3cret")
        ftp.set_pasv.assert_called_once_with(True)

    def test_anonymous_login(self):
        backend, ftp = self.make(username=None, password=None)
        backend.connect()
        ftp.login.assert_called_once_with()

    def test_connect_is_lazy_and_reused(self):
        backend, ftp = self.make()
        backend.connect()
        backend.rename("/a", "/b")
        assert ftp.connect.call_count == 1

    def test_login_failure_closes_socket(self):
        backend, ftp = self.make()
        ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")
        with pytest.raises(ftplib.error_perm):
            backend.connect()
        ftp.close.assert_called_once()

    def test_list_filters_directories(self):
        backend, ftp = self.make()
        ftp.nlst.return_value = ["/out/IMP_1.txt", "/out/completed", "/out/IMP_1.ok"]

        def cwd(path):
            if path not in ("/", "/out/completed"):
                raise ftplib.error_perm("550 Not a directory")

        ftp.cwd.side_effect = cwd
        assert backend.list_names("/out") == ["IMP_1.txt", "IMP_1.ok"]

    def test_list_empty_dir_550(self):
        backend, ftp = self.make()
        ftp.nlst.side_effect = ftplib.error_perm("550 No files found")
        assert backend.list_names("/out") == []

    def test_list_missing_dir_raises(self):
        backend, ftp = self.make()
        ftp.nlst.side_effect = ftplib.error_perm("550 No such directory")
        ftp.cwd.side_effect = ftplib.error_perm("550 No such directory")
        with pytest.raises(ftplib.error_perm):
            backend.list_names("/missing")

    def test_upload_and_download_binary(self, tmp_path):
        backend, ftp = self.make()
        local = tmp_path / "EXP_1.txt"
        local.write_bytes(b"x")
        backend.upload(str(local), "/in/EXP_1.txt")
        assert ftp.storbinary.call_args.args[0] == "STOR /in/EXP_1.txt"

        ftp.retrbinary.side_effect = lambda cmd, callback: callback(b"remote")
        backend.download("/out/IMP_1.txt", str(tmp_path / "IMP_1.txt"))
        assert ftp.retrbinary.call_args.args[0] == "RETR /out/IMP_1.txt"
        assert (tmp_path / "IMP_1.txt").read_bytes() == b"remote"

    def test_make_dir_existing_is_ok(self):
        backend, ftp = self.make()
        ftp.mkd.side_effect = ftplib.error_perm("550 File exists")
        backend.make_dir("/out/completed")
        ftp.cwd.assert_any_call("/out/completed")

    def test_make_dir_failure_propagates(self):
        backend, ftp = self.make()
        ftp.mkd.side_effect = ftplib.error_perm("550 Permission denied")
        ftp.cwd.side_effect = ftplib.error_perm("550 No such directory")
        with pytest.raises(ftplib.error_perm):
            backend.make_dir("/out/completed")

    def test_close_falls_back_when_quit_fails(self):
        backend, ftp = self.make()
        backend.connect()
        ftp.quit.side_effect = EOFError()
        backend.close()
        ftp.close.assert_called_once()
        backend.close()
        assert ftp.quit.call_count == 1

    def test_reset_forces_reconnect(self):
        backend, ftp = self.make()
        backend.connect()
        backend.reset()
        backend.connect()
        assert ftp.connect.call_count == 2


class TestSFTPBackend:
    """SFTPBackend against a mocked paramiko."""

    @patch("interchange.transfer.sftp.paramiko")
    def test_connect_and_list(self, mock_paramiko):
        from interchange.transfer.sftp import SFTPBackend

        client = MagicMock()
        mock_paramiko.SFTPClient.from_transport.return_value = client
        file_attr = MagicMock(filename="IMP_1.txt", st_mode=stat.S_IFREG | 0o644)
        dir_attr = MagicMock(filename="completed", st_mode=stat.S_IFDIR | 0o755)
        client.listdir_attr.return_value = [file_attr, dir_attr]

        backend = SFTPBackend(ftp_settings(protocol="sftp", port=22))
        assert backend.list_names("/out") == ["IMP_1.txt"]
        mock_paramiko.Transport.assert_called_once_with(("ftp.partner.example", 22))
        mock_paramiko.Transport.return_value.connect.assert_called_once_with(
            username="exchange", password="s3cret", pkey=None
        )

    @patch("interchange.transfer.sftp.paramiko")
    def test_rename_uses_posix_rename(self, mock_paramiko):
        from interchange.transfer.sftp import SFTPBackend

        client = mock_paramiko.SFTPClient.from_transport.return_value
        backend = SFTPBackend(ftp_settings(protocol="sftp", port=22))
        backend.rename("/out/a.txt", "/out/completed/a.txt")
        client.posix_rename.assert_called_once_with("/out/a.txt", "/out/completed/a.txt")

    @patch("interchange.transfer.sftp.paramiko")
    def test_close_closes_transport(self, mock_paramiko):
        from interchange.transfer.sftp import SFTPBackend

        backend = SFTPBackend(ftp_settings(protocol="sftp", port=22))
        backend.connect()
        backend.close()
        mock_paramiko.SFTPClient.from_transport.return_value.close.assert_called_once()
        mock_paramiko.Transport.return_value.close.assert_called_once()


class TestBuildBackend:
    def test_ftp(self):
        assert isinstance(build_backend(ftp_settings()), FTPBackend)

    def test_sftp(self):
        from interchange.transfer.sftp import SFTPBackend

        assert isinstance(build_backend(ftp_settings(protocol="sftp", port=22)), SFTPBackend)

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            build_backend(ftp_settings(protocol="scp"))
