"""Pick-one modal for payment methods and confirmations."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from comanda.constant import PAYMENT_METHOD_KEYS, PAYMENT_METHOD_LABELS

# (shortcut key, returned value, label)
Choice = tuple[str, str, str]

PAYMENT_CHOICES: list[Choice] = [
    (key, method, PAYMENT_METHOD_LABELS[method]) for key, method in PAYMENT_METHOD_KEYS.items()
]
CONFIRM_CHOICES: list[Choice] = [("s", "yes", "Sim"), ("n", "no", "Não")]


class ChoiceModal(ModalScreen[str | None]):
    """Centered list of choices; dismisses with the chosen value or None."""

    CSS = """
    ChoiceModal {
        align: center middle;
        background: $background 60%;
    }

    #choice-dialog {
        width: 52;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #choice-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #choice-help {
        margin-top: 1;
        color: $text-muted;
    }
    """

    def __init__(self, title: str, prompt: str, choices: list[Choice]) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.choices = choices
        self.cursor_index = 0

    def compose(self) -> ComposeResult:
        with Container(id="choice-dialog"):
            yield Static(self.title_text, id="choice-title")
            yield Static(id="choice-body")
            yield Static("Tecla de atalho ou ↑/↓ + Enter. Esc cancela.", id="choice-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        event.stop()
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return
        if event.key in {"up", "k"}:
            self.cursor_index = (self.cursor_index - 1) % len(self.choices)
            self._refresh_content()
            return
        if event.key in {"down", "j"}:
            self.cursor_index = (self.cursor_index + 1) % len(self.choices)
            self._refresh_content()
            return
        if event.key == "enter":
            self.dismiss(self.choices[self.cursor_index][1])
            return
        if event.character:
            for key, value, _ in self.choices:
                if event.character.lower() == key:
                    self.dismiss(value)
                    return

    def _refresh_content(self) -> None:
        content = Text(self.prompt_text + "\n\n", style="white")
        for idx, (key, _, label) in enumerate(self.choices):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            style = "bold white" if idx == self.cursor_index else "white"
            shortcut = f"[{key.upper()}] " if key else ""
            content.append(f"{pointer}{shortcut}{label}", style=style)
        self.query_one("#choice-body", Static).update(content)
