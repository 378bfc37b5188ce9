"""Entry point for simple-audio-player.

Usage:
    python -m simple_audio_player index DIR
    python -m simple_audio_player play FILE [--start S --end E] [--volume V]
"""

import argparse
import logging
import sys
import threading

from pydantic import ValidationError

from simple_audio_player.config import PlayerSettings
from simple_audio_player.errors import ResourceOpenError
from simple_audio_player.library.indexer import LibraryIndexer
from simple_audio_player.models import PlaybackEnded

logger = logging.getLogger("simple_audio_player")


def setup_logging(settings: PlayerSettings) -> None:
    """Configure root logging: stderr, plus a log file when configured."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, mode="w", encoding="utf-8"))
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="simple-audio-player")
    commands = parser.add_subparsers(dest="command", required=True)

    index_cmd = commands.add_parser("index", help="List audio files under a directory")
    index_cmd.add_argument("directory")

    play_cmd = commands.add_parser("play", help="Play a file or a segment of it")
    play_cmd.add_argument("file")
    play_cmd.add_argument("--start", type=float, default=None, help="Segment start (s)")
    play_cmd.add_argument("--end", type=float, default=None, help="Segment end (s)")
    play_cmd.add_argument("--volume", type=float, default=None, help="Gain 0.0-1.0")
    return parser


def run_index(settings: PlayerSettings, directory: str) -> int:
    result = LibraryIndexer(settings).index(directory)
    for entry in result.sorted_by_name():
        print(f"{entry.file_name}\t{entry.duration_string}\t{entry.description}")
    print(
        f"Loaded {len(result.entries)} files "
        f"({result.skipped_directories} directories skipped).",
        file=sys.stderr,
    )
    return 0


def run_play(
    settings: PlayerSettings,
    file: str,
    start: float | None,
    end: float | None,
    volume: float | None,
) -> int:
    from simple_audio_player.playback.controller import PlaybackController

    finished = threading.Event()

    def on_ended(event: PlaybackEnded) -> None:
        logger.info("Finished %s (%s)", event.path, event.reason.value)
        finished.set()

    controller = PlaybackController()
    controller.set_playback_ended_listener(on_ended)

    try:
        if start is not None and end is not None and end > start:
            if not controller.play_segment(file, start, end):
                print(f"Segment start {start}s is past the end of {file}", file=sys.stderr)
                return 1
        else:
            controller.play(file)
    except ValueError as exc:
        print(f"Invalid segment: {exc}", file=sys.stderr)
        return 2
    except ResourceOpenError as exc:
        print(f"Error playing file: {exc}", file=sys.stderr)
        return 1

    controller.set_volume(settings.initial_volume if volume is None else volume)

    try:
        while not finished.wait(0.2):
            pass
    except KeyboardInterrupt:
        controller.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)

    try:
        settings = PlayerSettings.from_environment()
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 2

    setup_logging(settings)

    if args.command == "index":
        return run_index(settings, args.directory)
    return run_play(settings, args.file, args.start, args.end, args.volume)


if __name__ == "__main__":
    sys.exit(main())
