import unittest
from unittest.mock import MagicMock, patch
from io import StringIO

from rich.console import Console

from koai.ai.assistants import chat
from koai.config import Settings
from koai.errors import CompletionError, ConfigurationError


def _console():
    buffer = StringIO()
    return Console(file=buffer, force_terminal=False, color_system=None), buffer


class TestOneShotChat(unittest.TestCase):
    """Tests for `koai ac`."""

    def setUp(self):
        self.settings = Settings(api_key="sk-test")

    @patch("koai.ai.assistants.chat.create_client")
    def test_prints_exactly_the_response(self, mock_create_client):
        """Piped output is the completion text, untouched."""
        answer = "# Title\n\n* item with [brackets] and **bold**"
        mock_create_client.return_value.complete.return_value = answer
        console, buffer = _console()

        result = chat.chat(self.settings, "give me markdown", console=console)

        self.assertEqual(result, answer)
        self.assertEqual(buffer.getvalue(), answer + "\n")

    @patch("koai.ai.assistants.chat.create_client")
    def test_uses_chat_options_with_overrides(self, mock_create_client):
        mock_client = mock_create_client.return_value
        mock_client.complete.return_value = "ok"
        console, _ = _console()

        chat.chat(self.settings, "hello", overrides={"model": "gpt-4o"}, console=console)

        prompt, options = mock_client.complete.call_args.args
        self.assertEqual(prompt, "hello")
        self.assertEqual(options.model, "gpt-4o")
        self.assertEqual(options.max_tokens, 1000)

    @patch("koai.ai.llm.aisuite.Client")
    def test_missing_credential_fails_before_network(self, MockAisuiteClient):
        """No credential means ConfigurationError and no provider call at all."""
        console, _ = _console()

        with self.assertRaises(ConfigurationError):
            chat.chat(Settings(api_key=None), "hello", console=console)

        MockAisuiteClient.assert_not_called()
        MockAisuiteClient.return_value.chat.completions.create.assert_not_called()

    @patch("koai.ai.assistants.chat.create_client")
    def test_empty_prompt_is_rejected(self, mock_create_client):
        with self.assertRaises(ValueError):
            chat.chat(self.settings, "  ")
        mock_create_client.assert_not_called()

    def test_render_response_markdown_on_terminal(self):
        buffer = StringIO()
        console = Console(file=buffer, force_terminal=True, color_system=None, width=80)

        chat.render_response(console, "**bold**")

        self.assertIn("bold", buffer.getvalue())
        self.assertNotIn("**", buffer.getvalue())


class TestChatLoop(unittest.TestCase):
    """Tests for `koai chat`."""

    def setUp(self):
        self.settings = Settings(api_key="sk-test")
        self.console = MagicMock()

    @patch("koai.ai.assistants.chat.render_response")
    @patch("koai.ai.assistants.chat.create_client")
    @patch("builtins.input", side_effect=["first", "", "second", "exit"])
    def test_loop_sends_each_prompt(self, mock_input, mock_create_client, mock_render):
        mock_client = mock_create_client.return_value
        mock_client.complete.side_effect = ["one", "two"]

        chat.chat_loop(self.settings, console=self.console)

        prompts = [c.args[0] for c in mock_client.complete.call_args_list]
        self.assertEqual(prompts, ["first", "second"])
        self.assertEqual([c.args[1] for c in mock_render.call_args_list], ["one", "two"])

    @patch("koai.ai.assistants.chat.render_response")
    @patch("koai.ai.assistants.chat.create_client")
    @patch("builtins.input", side_effect=["fails", "works", EOFError])
    def test_loop_survives_completion_errors(self, mock_input, mock_create_client, mock_render):
        mock_client = mock_create_client.return_value
        mock_client.complete.side_effect = [CompletionError("rate limited"), "fine"]

        chat.chat_loop(self.settings, console=self.console)

        self.assertEqual(mock_client.complete.call_count, 2)
        printed = " ".join(str(c.args[0]) for c in self.console.print.call_args_list)
        self.assertIn("rate limited", printed)
        mock_render.assert_called_once_with(self.console, "fine")

    @patch("koai.ai.assistants.chat.create_client")
    @patch("builtins.input", side_effect=KeyboardInterrupt)
    def test_loop_ends_on_interrupt(self, mock_input, mock_create_client):
        chat.chat_loop(self.settings, console=self.console)
        mock_create_client.return_value.complete.assert_not_called()


if __name__ == "__main__":
    unittest.main()
