"""
Command-line interface for harpipe.

  harpipe convert events.jsonl -o page.har
  harpipe capture --port 9222 --reload -o page.har
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .converter import har_from_messages
from .options import HarOptions


def load_messages(path: Path) -> List[Dict[str, Any]]:
    """Reads events from a JSON array file or a JSON Lines file."""
    text = path.read_text(encoding='utf-8')
    stripped = text.lstrip()
    if stripped.startswith('['):
        messages = json.loads(stripped)
    else:
        messages = []
        for number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                messages.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{number} is not valid JSON: {e}") from e
    if not all(isinstance(message, dict) for message in messages):
        raise ValueError(f"{path} must contain event objects with 'method' and 'params'")
    return messages


def write_har(har: Dict[str, Any], output: Optional[Path]):
    text = json.dumps(har, indent=2)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + '\n', encoding='utf-8')
    print(f"[harpipe] Wrote {len(har['log']['entries'])} entries to {output}", file=sys.stderr)


def options_from_args(args: argparse.Namespace) -> HarOptions:
    return HarOptions(
        include_resources_from_disk_cache=args.include_disk_cache,
        include_text_from_response_body=args.include_response_text,
        include_custom_properties=args.include_custom_properties,
        name=args.name,
        comment=args.comment,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Build HAR logs from Chrome DevTools Protocol Page/Network events.',
        prog='harpipe'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Log correlation details to stderr.')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--output', '-o', type=Path, help='Where to write the HAR (default: stdout).')
    common.add_argument('--include-disk-cache', action='store_true',
                        help='Keep entries served from the browser cache.')
    common.add_argument('--include-custom-properties', action='store_true',
                        help="Merge the '_custom' property of events into their entries.")
    common.add_argument('--include-response-text', action='store_true',
                        help='Reserved for response-body capture.')
    common.add_argument('--name', default='harpipe', help='Creator name recorded in the HAR.')
    common.add_argument('--comment', default='', help='Creator comment recorded in the HAR.')

    subparsers = parser.add_subparsers(dest='command', required=True)

    convert = subparsers.add_parser('convert', parents=[common], help='Convert a recorded event file.')
    convert.add_argument('input', type=Path, help='JSON array or JSON Lines file of {method, params} events.')

    capture = subparsers.add_parser('capture', parents=[common], help='Record a live browser tab.')
    capture.add_argument('--port', '-p', type=int, required=True, help='The CDP port of the target browser.')
    capture.add_argument('--reload', action='store_true', help='Reload the tab once recording starts.')
    capture.add_argument('--save-events', type=Path, help='Also write the raw events as JSON Lines.')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )
    options = options_from_args(args)

    try:
        if args.command == 'convert':
            har = har_from_messages(load_messages(args.input), options)
        else:
            from .recorder import CaptureSession
            session = CaptureSession(args.port, options=options, reload=args.reload, events_path=args.save_events)
            har = asyncio.run(session.start())
            if har is None:
                print("[harpipe] Could not connect to the browser.", file=sys.stderr)
                return 1
        write_har(har, args.output)
    except KeyboardInterrupt:
        print("\n[harpipe] User interrupted the process. Exiting.", file=sys.stderr)
        return 130
    except (OSError, ValueError) as e:
        print(f"[harpipe] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
