"""Single-line entry modal for names, quantities and amounts."""

from __future__ import annotations

from typing import Callable, Literal

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from comanda.errors import ValidationError
from comanda.models import ZERO, to_money

PromptMode = Literal["text", "digits", "amount"]


def required_error(value: str) -> str | None:
    if not value.strip():
        return "Campo obrigatório."
    return None


def quantity_error(value: str) -> str | None:
    if not value:
        return "Informe a quantidade."
    if not value.isdigit() or int(value) <= 0:
        return "A quantidade deve ser maior que zero."
    return None


def amount_error(value: str) -> str | None:
    if not value:
        return "Informe o valor."
    try:
        amount = to_money(value)
    except ValidationError:
        return "Valor inválido."
    if amount < ZERO:
        return "O valor não pode ser negativo."
    return None


class PromptModal(ModalScreen[str | None]):
    """Prompt for one value; dismisses with the text, or None when cancelled."""

    CSS = """
    PromptModal {
        align: center middle;
        background: $background 60%;
    }

    #prompt-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #prompt-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #prompt-text {
        color: white;
        margin-bottom: 1;
    }

    #prompt-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #prompt-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #prompt-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        initial: str = "",
        mode: PromptMode = "text",
        validate: Callable[[str], str | None] | None = None,
        max_length: int = 40,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.entry_mode = mode
        self.validator = validate
        self.max_length = max_length
        self.value = initial
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.prompt_text, id="prompt-text")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            yield Static("Enter confirma. Backspace apaga. Esc/Ctrl+C cancela.", id="prompt-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        event.stop()
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return

        if event.key == "enter":
            self._confirm()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            return

        if event.is_printable and event.character and self._accepts(event.character):
            if len(self.value) < self.max_length:
                self.value += event.character
            self.error = ""
            self._refresh_content()

    def _accepts(self, char: str) -> bool:
        if self.entry_mode == "digits":
            return char.isdigit()
        if self.entry_mode == "amount":
            return char.isdigit() or char in ",."
        return True

    def _confirm(self) -> None:
        value = self.value.strip()
        if self.validator is not None:
            error = self.validator(value)
            if error:
                self.error = error
                self._refresh_content()
                return
        self.dismiss(value)

    def _refresh_content(self) -> None:
        self.query_one("#prompt-value", Static).update(f"{self.value}|")
        self.query_one("#prompt-error", Static).update(self.error or "")
