"""
Tests for CLI utilities.
"""

import io
import os
import signal

from provisionkit.cli.utils import (
    cancel_on_signals,
    confirm_prompt,
    format_success_message,
    make_confirm,
    make_progress_printer,
    print_error,
    prompt_version_choice,
)
from provisionkit.core.download import DownloadProgress
from provisionkit.provision.models import VersionChoice


class TestPrompts:
    def test_confirm_yes(self):
        assert confirm_prompt("Continue?", input_func=lambda p: "y") is True
        assert confirm_prompt("Continue?", input_func=lambda p: "YES") is True

    def test_confirm_defaults_to_no(self):
        assert confirm_prompt("Continue?", input_func=lambda p: "") is False

    def test_confirm_eof_is_no(self):
        def eof(prompt):
            raise EOFError

        assert confirm_prompt("Continue?", input_func=eof) is False

    def test_make_confirm(self):
        assert make_confirm(True)("anything") is True
        assert make_confirm(False, interactive=False)("anything") is False
        assert make_confirm(False, interactive=True) is confirm_prompt

    def test_version_choice(self, capsys):
        assert prompt_version_choice(lambda p: "2") is VersionChoice.DEVELOPMENT
        assert prompt_version_choice(lambda p: "") is VersionChoice.RELEASE
        assert prompt_version_choice(lambda p: "x") is VersionChoice.RELEASE
        assert "Latest release" in capsys.readouterr().out


def test_format_success_message():
    message = format_success_message(
        "Installation Complete!", {"Version": "v1.3.0 (abc1234)"}, ["cd ~/app"]
    )

    assert "Installation Complete!" in message
    assert "Version: v1.3.0 (abc1234)" in message
    assert message.index("Version:") < message.index("cd ~/app")


def test_print_error(capsys):
    print_error("boom", "details here")

    err = capsys.readouterr().err
    assert "ERROR: boom" in err
    assert "details here" in err


def test_cancel_on_signals_routes_sigterm():
    cancelled = []
    previous = signal.getsignal(signal.SIGTERM)

    with cancel_on_signals(lambda: cancelled.append(True)):
        os.kill(os.getpid(), signal.SIGTERM)

    assert cancelled == [True]
    assert signal.getsignal(signal.SIGTERM) == previous


def test_progress_printer_redraws_and_clears():
    out = io.StringIO()
    show = make_progress_printer(out)

    show(DownloadProgress(1024 * 1024, 4 * 1024 * 1024, 1.0))
    show(DownloadProgress(4 * 1024 * 1024, 4 * 1024 * 1024, 2.0))

    text = out.getvalue()
    assert text.startswith("\r  Downloading: 1.0/4.0 MiB (25%)")
    assert text.endswith("\r")
    assert "\n" not in text
