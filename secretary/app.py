"""Main Secretary application."""

from __future__ import annotations

import logging
import signal
import threading
import time
from typing import TYPE_CHECKING, Any, Callable

from secretary.audio import AudioCapture, get_device_name, list_input_devices, play_tone
from secretary.config import Config
from secretary.context import ContextProvider
from secretary.coordinator import PipelineCoordinator
from secretary.desktop import create_desktop
from secretary.focus import create_focus_inspector
from secretary.models import MessageRole, SessionState
from secretary.output import ClipboardOutput, PasteOutput
from secretary.router import CommandRouter
from secretary.session import RecordingSession
from secretary.tools import ToolExecutor
from secretary.transcribe import WhisperTranscriber

if TYPE_CHECKING:
    from secretary.models import ChatMessage

logger = logging.getLogger(__name__)

ROLE_ICONS = {
    MessageRole.USER: "🗣️",
    MessageRole.ASSISTANT: "💬",
    MessageRole.SYSTEM: "⚠️",
    MessageRole.TOOL: "🛠️",
}


class SecretaryApp:
    """
    Push-to-talk voice command assistant.

    Records while a key is held, transcribes the audio, lets a language
    model pick one tool, and runs it against the desktop.
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or Config()
        self._coordinator: PipelineCoordinator | None = None
        self._shutdown_lock = threading.Lock()
        self._shut_down = False

    def setup(self) -> PipelineCoordinator:
        """Initialize all components."""
        self._print_banner()
        self._print_devices()
        self._coordinator = build_coordinator(
            self._config,
            on_state_change=self._on_state_change,
            on_message=self._on_message,
            on_too_short=self._on_too_short,
            on_notice=self._on_notice,
        )
        self._coordinator.start()
        self._print_instructions()
        return self._coordinator

    def _print_banner(self) -> None:
        print("=" * 60)
        print("🎙️ SECRETARY - Push-to-Talk Voice Commands")
        print("=" * 60)

    def _print_devices(self) -> None:
        print("\n🎤 Available audio input devices:")
        print("-" * 50)
        for device in list_input_devices():
            print(f"  {device}")
        print("-" * 50)

        device_name = get_device_name(self._config.audio.device_id)
        if self._config.audio.device_id is not None:
            print(f"\n✅ Using input device [{self._config.audio.device_id}]: {device_name}")
        else:
            print(f"\n✅ Using DEFAULT input device: {device_name}")

        if not self._config.transcription.api_key:
            print("\n⚠️  SECRETARY_OPENAI_API_KEY is not set; transcription will fail.")
        if not self._config.router.api_key:
            print("⚠️  SECRETARY_HF_TOKEN is not set; commands cannot be routed.")

    def _print_instructions(self) -> None:
        print("\n" + "=" * 60)
        print("📌 INSTRUCTIONS:")
        print(f"   • Hold {self._config.keybinds.ptt_key} to talk. Release to run the command.")
        print("   • Plain speech is typed into the focused window.")
        print('   • Say "open Safari", "switch to Notes", "research ..." or "Spotify next".')
        print("   • Press Cmd+Esc to quit cleanly. Ctrl+C also works.")
        print("=" * 60)
        print(f"\n🟢 Ready! Hold {self._config.keybinds.ptt_key} to start talking...\n")

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        if to_state == SessionState.RECORDING:
            play_tone(self._config.tones, self._config.tones.start_hz, self._config.audio.sample_rate)
            print("🎙️ Recording...")
        elif from_state == SessionState.RECORDING:
            play_tone(self._config.tones, self._config.tones.stop_hz, self._config.audio.sample_rate)
            if to_state == SessionState.PROCESSING:
                print("🛑 Stopped. Processing...")
        elif to_state == SessionState.IDLE:
            print("---")

    def _on_message(self, message: "ChatMessage") -> None:
        icon = ROLE_ICONS.get(message.role, "•")
        print(f"{icon} {message.content}")

    def _on_too_short(self, duration_s: float) -> None:
        print(f"⛔️ Ignored tap (too short: {duration_s:.2f}s)")

    def _on_notice(self, notice: str) -> None:
        print(f"📋 {notice}")

    def shutdown(self) -> None:
        """Shutdown the application gracefully."""
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True

        logger.info("Shutting down...")
        if self._coordinator is not None:
            self._coordinator.stop()

    def run(self) -> None:
        """Run the application with keyboard listener."""
        from pynput import keyboard

        ptt_key = resolve_key(keyboard, self._config.keybinds.ptt_key)
        quit_key = resolve_key(keyboard, self._config.keybinds.quit_key)
        quit_modifier = resolve_key(keyboard, self._config.keybinds.quit_modifier)

        coordinator = self.setup()

        cmd_down = False
        quitting = False

        def request_quit() -> bool:
            nonlocal quitting
            if quitting:
                return False
            quitting = True
            print("\n👋 Quitting...")
            self.shutdown()
            return True

        def on_press(key: keyboard.Key | keyboard.KeyCode | None) -> None:
            nonlocal cmd_down

            if key == quit_modifier:
                cmd_down = True
                return

            if key == ptt_key:
                coordinator.press()

        def on_release(key: keyboard.Key | keyboard.KeyCode | None) -> bool | None:
            nonlocal cmd_down

            if key == quit_modifier:
                cmd_down = False
                return None

            if key == quit_key and cmd_down:
                if request_quit():
                    return False  # Stop listener
                return None

            if key == ptt_key:
                time.sleep(0.05)  # Small delay for cleaner cutoff
                coordinator.release()

            return None

        def handle_sigint(sig: int, frame: object) -> None:
            self.shutdown()
            raise SystemExit(0)

        signal.signal(signal.SIGINT, handle_sigint)

        with keyboard.Listener(
            on_press=on_press,
            on_release=on_release,
        ) as listener:
            listener.join()

        self.shutdown()


def resolve_key(keyboard_module: Any, name: str) -> Any:
    """Look up a `pynput.keyboard.Key` member by name."""
    try:
        return getattr(keyboard_module.Key, name)
    except AttributeError:
        raise ValueError(f"Unknown key name: {name!r}") from None


def build_coordinator(
    config: Config,
    on_state_change: Callable[[SessionState, SessionState], None] | None = None,
    on_message: Callable[[ChatMessage], None] | None = None,
    on_too_short: Callable[[float], None] | None = None,
    on_notice: Callable[[str], None] | None = None,
) -> PipelineCoordinator:
    """Wire the production collaborators into a coordinator."""
    desktop = create_desktop()
    executor = ToolExecutor(
        desktop=desktop,
        focus_inspector=create_focus_inspector(),
        paste_output=PasteOutput(restore_delay_s=config.typing.restore_delay_s),
        clipboard_output=ClipboardOutput(),
        search_base_url=config.typing.search_url,
    )
    session = RecordingSession(
        recorder=AudioCapture(config.audio),
        transcriber=WhisperTranscriber(config.transcription),
        router=CommandRouter(config.router),
        executor=executor,
        context_source=ContextProvider(config.router, desktop),
        min_duration_s=config.min_recording_s,
        on_state_change=on_state_change,
    )
    return PipelineCoordinator(
        session=session,
        executor=executor,
        on_message=on_message,
        on_too_short=on_too_short,
        on_notice=on_notice,
    )
