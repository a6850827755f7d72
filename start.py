"""
YANGA Start - Console Entry Point

Wires the tracker together:
- PreferencesGateway over ~/.yanga/preferences.json
- VoiceNotifier (spoken reminder)
- ReminderScheduler + CountdownTicker
- Optional Ctrl+Alt+Y hotkey to record the selected flavor

Typed commands and the hotkey share one thread-safe queue so every
record goes through the same path.
"""

import logging
import threading
from queue import Empty, Queue
from typing import Optional

from yanga.config import TrackerConfig
from yanga.core import CountdownTicker, ReminderScheduler, format_remaining
from yanga.memory import KeyValueStore, PreferencesGateway
from yanga.memory.reminder_state import READY
from yanga.notify import NotificationRequest, VoiceNotifier
from yanga.tools import ExportWriteFailure

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

try:
    import keyboard
    _HOTKEY_AVAILABLE = True
except ImportError:
    _HOTKEY_AVAILABLE = False
    logger.warning("keyboard library not found, run: pip install keyboard")

HOTKEY = "ctrl+alt+y"


def print_help(hotkey_enabled: bool):
    print("Commands:")
    print("  - 'flavors'          - List flavors")
    print("  - 'select <n|name>'  - Choose the flavor used by 'add' and the hotkey")
    print("  - 'add [n|name]'     - Record a Yanga")
    print("  - 'status'           - Time until the next Yanga")
    print("  - 'history'          - List recorded Yangas")
    print("  - 'export [path]'    - Write history to CSV")
    if hotkey_enabled:
        print(f"  - {HOTKEY.title():<17}- Record the selected flavor")
    print("  - 'quit'             - Exit")
    print()


def main():
    print("=" * 70)
    print("YANGA Tracker")
    print("=" * 70)
    print()

    config = TrackerConfig()
    selected = {"flavor": config.flavors[0]}
    commands: Queue = Queue()

    def _on_fire(payload: NotificationRequest):
        print(f"\n🔔 {payload.title} {payload.body}")

    def _on_error(error: Exception):
        print(f"\n⚠️  {type(error).__name__}: {error}")

    last_shown = {"text": None}

    def _on_tick(remaining):
        # Only announce the transition, the prompt owns the console
        if remaining is READY and last_shown["text"] != config.ready_text:
            print(f"\n✓ {config.ready_text}")
        last_shown["text"] = format_remaining(remaining, config.ready_text)

    try:
        gateway = PreferencesGateway(KeyValueStore(config.storage_path), config.reference_zone)
        notifier = VoiceNotifier(on_fire=_on_fire)
        scheduler = ReminderScheduler(gateway, notifier, config, on_error=_on_error)
        ticker = CountdownTicker(scheduler, on_tick=_on_tick)
        ticker.attach()

        state = scheduler.recover()
    except Exception as e:
        logger.error(f"Failed to initialize tracker: {e}", exc_info=True)
        print(f"\n❌ Error: {e}")
        return 1

    print(f"✓ Storage : {config.storage_path}")
    print(f"✓ History : {len(scheduler.history())} Yangas")
    print(f"✓ Status  : {state.value} ({format_remaining(scheduler.tick(), config.ready_text)})")
    print()

    hotkey_enabled = False
    if _HOTKEY_AVAILABLE:
        try:
            keyboard.add_hotkey(HOTKEY, lambda: commands.put("add"))
            hotkey_enabled = True
        except Exception as e:
            logger.warning(f"Hotkey registration failed: {e}")

    print_help(hotkey_enabled)

    def process_input(user_input: str):
        user_input = user_input.strip()
        if not user_input:
            return

        command, _, argument = user_input.partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command in ("quit", "exit", "q"):
            raise SystemExit(0)

        if command == "help":
            print_help(hotkey_enabled)
            return

        if command == "flavors":
            for i, flavor in enumerate(config.flavors, start=1):
                marker = "*" if flavor == selected["flavor"] else " "
                print(f"  {marker} {i}. {flavor}")
            return

        if command == "select":
            try:
                selected["flavor"] = config.resolve_flavor(argument)
                print(f"✓ Selected {selected['flavor']}")
            except ValueError as e:
                print(f"❌ {e}")
            return

        if command == "add":
            try:
                flavor = config.resolve_flavor(argument) if argument else selected["flavor"]
                event = scheduler.record_event(flavor)
            except ValueError as e:
                print(f"❌ {e}")
                return
            local = event.occurred_at.astimezone(config.zone)
            print(f"✓ {event.label} at {local.strftime('%H:%M:%S')}, "
                  f"next in {format_remaining(scheduler.tick(), config.ready_text)}")
            return

        if command == "status":
            print(f"⏳ {format_remaining(scheduler.tick(), config.ready_text)}")
            return

        if command == "history":
            events = scheduler.history()
            if not events:
                print("📭 No Yangas yet")
                return
            print(f"📋 {len(events)} Yangas:")
            for event in events:
                local = event.occurred_at.astimezone(config.zone)
                print(f"  {local.strftime('%Y-%m-%d %H:%M:%S')}  {event.label}")
            return

        if command == "export":
            try:
                path = scheduler.export_csv(argument or None)
                print(f"✓ Exported to {path}")
            except ExportWriteFailure as e:
                print(f"❌ {e}")
            return

        print(f"Unknown command: {command} (type 'help')")

    # Console input runs on its own thread so hotkey records are handled too
    def _read_console():
        while True:
            try:
                commands.put(input("🥤 > "))
            except (EOFError, KeyboardInterrupt):
                commands.put("quit")
                return

    threading.Thread(target=_read_console, daemon=True, name="YANGA-Console").start()

    try:
        while True:
            try:
                line: Optional[str] = commands.get(timeout=0.5)
            except Empty:
                continue
            try:
                process_input(line)
            except SystemExit:
                break
            except Exception as e:
                logger.error(f"Command failed: {e}", exc_info=True)
                print(f"❌ {e}")
    except KeyboardInterrupt:
        print()
    finally:
        print("Shutting down...")
        if hotkey_enabled:
            try:
                keyboard.remove_hotkey(HOTKEY)
            except Exception as e:
                logger.debug(f"Hotkey removal failed: {e}")
        ticker.stop()
        scheduler.shutdown()
        notifier.shutdown()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
