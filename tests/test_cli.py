import unittest
from unittest.mock import patch

from io import StringIO
# This import will trigger the command registration via decorators in cli.py
from koai import cli
from koai.config import Settings
from koai.errors import ConfigurationError, FileError


class CliTestCase(unittest.TestCase):
    def setUp(self):
        """Use in-memory settings instead of reading files or the environment."""
        cli._settings = None
        patcher = patch("koai.cli.load_settings", return_value=Settings(api_key="sk-test"))
        self.mock_load_settings = patcher.start()
        self.addCleanup(patcher.stop)


class TestCommandLineParser(CliTestCase):
    """Tests for the command-line argument parser in cli.py."""

    @patch("koai.cli.chat")
    @patch("argcomplete.autocomplete")
    def test_ac_command_parses_correctly(self, mock_autocomplete, mock_chat):
        """Verify `koai ac "prompt"` calls the chat handler with the prompt."""
        cli.run_cli(["ac", "what is a monad?"])

        mock_chat.assert_called_once()
        settings, prompt = mock_chat.call_args.args
        self.assertEqual(prompt, "what is a monad?")
        self.assertEqual(settings.api_key, "sk-test")
        self.assertFalse(mock_chat.call_args.kwargs["raw"])

    @patch("koai.cli.chat")
    @patch("argcomplete.autocomplete")
    def test_completion_options_become_overrides(self, mock_autocomplete, mock_chat):
        """Verify per-call flags are passed as overrides."""
        cli.run_cli(
            ["ac", "hi", "--model", "gpt-4o", "-n", "50", "-t", "0.2", "-s", "Be brief", "--raw"]
        )

        overrides = mock_chat.call_args.kwargs["overrides"]
        self.assertEqual(
            overrides,
            {"model": "gpt-4o", "max_tokens": 50, "temperature": 0.2, "system_message": "Be brief"},
        )
        self.assertTrue(mock_chat.call_args.kwargs["raw"])

    @patch("koai.cli.edit")
    @patch("argcomplete.autocomplete")
    def test_ae_command_with_file(self, mock_autocomplete, mock_edit):
        """Verify `koai ae "prompt" --file x` requests an in-place edit."""
        cli.run_cli(["ae", "add type hints", "--file", "app.py"])

        mock_edit.assert_called_once()
        _settings, prompt = mock_edit.call_args.args
        self.assertEqual(prompt, "add type hints")
        self.assertEqual(mock_edit.call_args.kwargs["file"], "app.py")

    @patch("koai.cli.chat_loop")
    @patch("argcomplete.autocomplete")
    def test_chat_command_starts_loop(self, mock_autocomplete, mock_chat_loop):
        cli.run_cli(["chat"])
        mock_chat_loop.assert_called_once()

    @patch("koai.cli.edit_loop")
    @patch("argcomplete.autocomplete")
    def test_edit_command_starts_loop(self, mock_autocomplete, mock_edit_loop):
        cli.run_cli(["edit", "-f", "notes.md"])
        mock_edit_loop.assert_called_once()
        self.assertEqual(mock_edit_loop.call_args.kwargs["file"], "notes.md")

    @patch("koai.cli.run_tui")
    @patch("argcomplete.autocomplete")
    def test_tui_command_starts_panel_session(self, mock_autocomplete, mock_run_tui):
        cli.run_cli(["tui"])
        mock_run_tui.assert_called_once()

    @patch("koai.cli.agent")
    @patch("argcomplete.autocomplete")
    def test_agent_command(self, mock_autocomplete, mock_agent):
        cli.run_cli(["agent", "what changed since the last commit?"])
        _settings, prompt = mock_agent.call_args.args
        self.assertEqual(prompt, "what changed since the last commit?")

    @patch("koai.cli.chat")
    @patch("argcomplete.autocomplete")
    def test_config_option_is_used(self, mock_autocomplete, mock_chat):
        cli.run_cli(["--config", "my.json", "ac", "hi"])
        self.mock_load_settings.assert_called_once_with("my.json")

    @patch("sys.stderr", new_callable=StringIO)
    @patch("argcomplete.autocomplete")
    def test_missing_required_argument_exits_with_error(
        self, mock_autocomplete, mock_stderr
    ):
        """Verify a command with a missing argument exits with a clear error."""
        with self.assertRaises(SystemExit):
            cli.run_cli(["ac"])

        self.assertIn("the following arguments are required: prompt", mock_stderr.getvalue())

    @patch("sys.stderr", new_callable=StringIO)
    @patch("argcomplete.autocomplete")
    def test_invalid_command_exits_with_error(self, mock_autocomplete, mock_stderr):
        """Verify that an invalid command exits with a clear error."""
        with self.assertRaises(SystemExit):
            cli.run_cli(["fly"])

        self.assertIn("invalid choice: 'fly'", mock_stderr.getvalue())


class TestErrorReporting(CliTestCase):
    """Handler errors are printed, never turned into a failing exit status."""

    @patch("sys.stderr", new_callable=StringIO)
    @patch("koai.cli.chat", side_effect=ConfigurationError("OPENAI_API_KEY is not defined"))
    @patch("argcomplete.autocomplete")
    def test_configuration_error_is_reported(self, mock_autocomplete, mock_chat, mock_stderr):
        cli.run_cli(["ac", "hello"])
        self.assertIn("Error: OPENAI_API_KEY is not defined", mock_stderr.getvalue())

    @patch("sys.stderr", new_callable=StringIO)
    @patch("koai.cli.edit", side_effect=FileError("missing.txt", "File not found"))
    @patch("argcomplete.autocomplete")
    def test_file_error_names_the_path(self, mock_autocomplete, mock_edit, mock_stderr):
        cli.run_cli(["ae", "fix it", "-f", "missing.txt"])
        self.assertIn("Error: missing.txt: File not found", mock_stderr.getvalue())

    @patch("sys.stderr", new_callable=StringIO)
    @patch("koai.cli.chat", side_effect=ValueError("boom"))
    @patch("argcomplete.autocomplete")
    def test_main_exits_zero_on_handler_error(self, mock_autocomplete, mock_chat, mock_stderr):
        with patch("sys.argv", ["koai", "ac", "hello"]):
            with self.assertRaises(SystemExit) as cm:
                cli.main()
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("Error: boom", mock_stderr.getvalue())

    @patch("koai.cli.chat_loop", side_effect=KeyboardInterrupt)
    @patch("argcomplete.autocomplete")
    def test_interrupt_exits_zero(self, mock_autocomplete, mock_chat_loop):
        with patch("sys.argv", ["koai", "chat"]):
            with self.assertRaises(SystemExit) as cm:
                cli.main()
        self.assertEqual(cm.exception.code, 0)

    @patch("sys.stderr", new_callable=StringIO)
    @patch("argcomplete.autocomplete")
    def test_settings_error_is_reported(self, mock_autocomplete, mock_stderr):
        self.mock_load_settings.side_effect = ConfigurationError("bad settings")
        cli.run_cli(["ac", "hello"])
        self.assertIn("Error: bad settings", mock_stderr.getvalue())


class TestCommandRegistration(unittest.TestCase):
    def test_all_commands_registered(self):
        names = {command.name for command in cli._available_commands}
        self.assertEqual(names, {"ac", "ae", "agent", "chat", "edit", "tui"})

    def test_handler_name_is_enforced(self):
        with self.assertRaises(ValueError):
            @cli.command([])
            def do_something(args):
                """Doc."""

    def test_handler_docstring_is_enforced(self):
        with self.assertRaises(ValueError):
            @cli.command([])
            def handle_nothing(args):
                pass


if __name__ == "__main__":
    unittest.main()
