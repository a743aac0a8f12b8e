"""
Unit tests for utils/prompt.py
"""
from unittest.mock import patch

import pytest

from playlistsync.utils.prompt import display_progress, prompt_choice, prompt_yes_no, transfer_progress


@patch("click.termui.visible_prompt_func")
def test_prompt_choice_valid_input(mock_input):
    """Test prompt_choice with valid user input."""
    mock_input.return_value = "2"

    options = ["Option A", "Option B", "Option C"]
    result = prompt_choice("Choose an option:", options)

    assert result == "Option B"
    mock_input.assert_called_once()


@patch("click.termui.visible_prompt_func")
def test_prompt_choice_invalid_then_valid_input(mock_input):
    """Test prompt_choice with invalid input followed by valid input."""
    mock_input.side_effect = ["invalid", "4", "3"]

    options = ["Option A", "Option B", "Option C"]
    result = prompt_choice("Choose an option:", options)

    assert result == "Option C"
    assert mock_input.call_count == 3


@patch("click.termui.visible_prompt_func")
def test_prompt_choice_with_custom_display_function(mock_input, capsys):
    """Test prompt_choice with custom display function."""
    mock_input.return_value = "1"
    storages = [{"id": 1, "desc": "Internal"}, {"id": 2, "desc": "SD card"}]

    result = prompt_choice("Select storage:", storages, lambda s: s["desc"].upper())

    assert result == storages[0]
    captured = capsys.readouterr()
    assert "1. INTERNAL" in captured.out
    assert "2. SD CARD" in captured.out


def test_prompt_choice_empty_options():
    """Test prompt_choice with empty options list."""
    with pytest.raises(ValueError, match="No options provided"):
        prompt_choice("Choose an option:", [])


@patch("click.termui.visible_prompt_func")
def test_prompt_yes_no(mock_input):
    mock_input.return_value = "y"
    assert prompt_yes_no("Continue?") is True

    mock_input.return_value = "no"
    assert prompt_yes_no("Continue?") is False


@patch("click.termui.visible_prompt_func")
def test_prompt_yes_no_default(mock_input):
    mock_input.return_value = ""

    assert prompt_yes_no("Continue?") is False
    assert prompt_yes_no("Continue?", default=True) is True


@patch("click.termui.visible_prompt_func", side_effect=KeyboardInterrupt)
def test_prompt_yes_no_cancelled(mock_input):
    with pytest.raises(SystemExit) as excinfo:
        prompt_yes_no("Continue?")

    assert excinfo.value.code == 1


def test_display_progress(capsys):
    """Test display_progress output."""
    display_progress(50, 100, "Uploading", width=10)

    captured = capsys.readouterr()
    assert "Uploading [█████-----] 50.0% (50/100)" in captured.out
    assert not captured.out.endswith("\n")


def test_display_progress_complete(capsys):
    """Test display_progress ends the line when complete."""
    display_progress(100, 100, width=10)

    captured = capsys.readouterr()
    assert "100.0% (100/100)" in captured.out
    assert captured.out.endswith("\n")


def test_display_progress_zero_total(capsys):
    display_progress(0, 0, width=4)

    assert "[████] 100.0% (0/0)" in capsys.readouterr().out


def test_transfer_progress_renders_bar(capsys):
    callback = transfer_progress("Sending")

    callback(5, 10)

    assert "Sending [" in capsys.readouterr().out
