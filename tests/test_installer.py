"""Tests for installer actions."""

import subprocess
import zipfile
from unittest.mock import MagicMock, patch

import httpx
import pytest

from yoblox_setup.services.installer import (
    cleanup_directory,
    copy_directory,
    download_file,
    extract_zip,
    find_directory,
    install_rojo,
    install_vscode_extension,
    launch_application,
    open_url,
    run_command,
)


class TestRunCommand:
    """Test suite for run_command."""

    @patch("yoblox_setup.services.installer.shutil.which", return_value="/usr/bin/cargo")
    @patch("yoblox_setup.services.installer.subprocess.run")
    def test_success(self, mock_run, mock_which):
        mock_run.return_value = MagicMock(returncode=0, stdout="done", stderr="")

        result = run_command("cargo", ["install", "rojo"], capture=True)

        assert result.success is True
        assert result.exit_code == 0
        assert mock_run.call_args.args[0] == ["/usr/bin/cargo", "install", "rojo"]

    @patch("yoblox_setup.services.installer.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=101, stdout="", stderr="error: linker not found")

        result = run_command("cargo", ["install", "rojo"], capture=True)

        assert result.success is False
        assert result.stderr == "error: linker not found"

    @patch("yoblox_setup.services.installer.subprocess.run", side_effect=subprocess.TimeoutExpired("cargo", 600))
    def test_timeout(self, mock_run):
        result = run_command("cargo")

        assert result.success is False
        assert "timed out" in result.error

    @patch("yoblox_setup.services.installer.subprocess.run", side_effect=FileNotFoundError("cargo"))
    def test_missing_executable(self, mock_run):
        result = run_command("cargo")

        assert result.success is False
        assert result.exit_code is None


class TestInstallers:
    @patch("yoblox_setup.services.installer.run_command")
    def test_install_rojo(self, mock_run):
        mock_run.return_value = MagicMock(success=True)

        assert install_rojo() is True
        mock_run.assert_called_once_with("cargo", ["install", "rojo"])

    @patch("yoblox_setup.services.installer.run_command")
    def test_install_rojo_failure(self, mock_run):
        mock_run.return_value = MagicMock(success=False, error="boom")

        assert install_rojo() is False

    @patch("yoblox_setup.services.installer.run_command")
    def test_install_extension(self, mock_run):
        mock_run.return_value = MagicMock(success=True)

        assert install_vscode_extension("evaera.vscode-rojo") is True
        assert mock_run.call_args.args == ("code", ["--install-extension", "evaera.vscode-rojo", "--force"])

    @patch("yoblox_setup.services.installer.run_command")
    def test_install_extension_failure(self, mock_run):
        mock_run.return_value = MagicMock(success=False, stderr="not found", error=None)

        assert install_vscode_extension("nobody.nothing") is False


class TestOpeners:
    @patch("yoblox_setup.services.installer.webbrowser.open", return_value=True)
    def test_open_url(self, mock_open):
        assert open_url("https://rojo.space/docs") is True

    @patch("yoblox_setup.services.installer.webbrowser.open", return_value=False)
    def test_open_url_without_browser(self, mock_open):
        assert open_url("https://rojo.space/docs") is False

    @patch("yoblox_setup.services.installer.subprocess.Popen")
    def test_launch_application_detaches(self, mock_popen):
        assert launch_application("C:/Studio/RobloxStudioBeta.exe") is True

        kwargs = mock_popen.call_args.kwargs
        assert kwargs["stdout"] == subprocess.DEVNULL
        assert "start_new_session" in kwargs or "creationflags" in kwargs

    @patch("yoblox_setup.services.installer.subprocess.Popen", side_effect=OSError("not executable"))
    def test_launch_application_failure(self, mock_popen):
        assert launch_application("C:/Studio/RobloxStudioBeta.exe") is False


class TestDownloadFile:
    """Test suite for download_file."""

    @staticmethod
    def _response(chunks, status=200):
        response = MagicMock()
        response.headers = {"Content-Length": str(sum(len(c) for c in chunks))}
        response.iter_bytes.return_value = iter(chunks)
        if status >= 400:
            request = httpx.Request("GET", "https://example.com/x.zip")
            response.raise_for_status.side_effect = httpx.HTTPStatusError(
                "not found", request=request, response=httpx.Response(status, request=request)
            )
        stream = MagicMock()
        stream.__enter__.return_value = response
        return stream

    @patch("yoblox_setup.services.installer.httpx.stream")
    def test_writes_chunks(self, mock_stream, tmp_path):
        mock_stream.return_value = self._response([b"PK", b"\x03\x04"])
        destination = tmp_path / "nested" / "yoblox.zip"

        download_file("https://example.com/x.zip", destination)

        assert destination.read_bytes() == b"PK\x03\x04"
        assert mock_stream.call_args.kwargs["follow_redirects"] is True

    @patch("yoblox_setup.services.installer.httpx.stream")
    def test_http_error_propagates(self, mock_stream, tmp_path):
        mock_stream.return_value = self._response([], status=404)

        with pytest.raises(httpx.HTTPStatusError):
            download_file("https://example.com/x.zip", tmp_path / "x.zip")


class TestArchives:
    """Test suite for archive and directory helpers."""

    def test_extract_zip(self, tmp_path):
        archive = tmp_path / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("yoblox-master/template/a.txt", "a")

        extract_zip(archive, tmp_path / "out")

        assert (tmp_path / "out" / "yoblox-master" / "template" / "a.txt").read_text() == "a"

    def test_extract_zip_rejects_path_traversal(self, tmp_path):
        archive = tmp_path / "evil.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("../evil.txt", "x")

        with pytest.raises(ValueError, match="Unsafe path"):
            extract_zip(archive, tmp_path / "out")

        assert not (tmp_path / "evil.txt").exists()

    def test_find_directory_ignores_files(self, tmp_path):
        (tmp_path / "yoblox-file").write_text("")
        (tmp_path / "yoblox-main").mkdir()

        assert find_directory(tmp_path, "yoblox-*") == tmp_path / "yoblox-main"
        assert find_directory(tmp_path, "other-*") is None

    def test_copy_directory_excludes(self, tmp_path):
        source = tmp_path / "src"
        (source / ".git").mkdir(parents=True)
        (source / "default.project.json").write_text("{}")

        copy_directory(source, tmp_path / "dst", exclude=(".git",))

        assert (tmp_path / "dst" / "default.project.json").exists()
        assert not (tmp_path / "dst" / ".git").exists()

    def test_cleanup_missing_directory(self, tmp_path):
        cleanup_directory(tmp_path / "missing")
