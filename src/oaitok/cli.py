"""Command line interface: import vocabularies, encode, decode and count tokens."""

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from . import config
from .errors import OaitokError
from .factory import from_tiktoken, load, save
from .registry import encoding_for_model, list_encodings, list_models
from .strategy import AllowedSpecial

log = logging.getLogger(__name__)


def _read_text(args: argparse.Namespace) -> str:
    """Return the positional text argument or all of stdin."""
    if args.text is not None:
        return args.text
    return sys.stdin.read()


def _allowed_special(args: argparse.Namespace) -> AllowedSpecial:
    if not args.allow_special:
        return None
    if args.allow_special == ["all"]:
        return "all"
    return set(args.allow_special)


def _cmd_import(args: argparse.Namespace) -> int:
    out_dir = Path(args.output) if args.output else config.get_data_dir()
    for name in args.encodings:
        tokenizer = from_tiktoken(name)
        path = save(tokenizer, out_dir / name, with_vocab=args.vocab)
        print(f"{name}: {len(tokenizer.vocab)} tokens -> {path}")
    return 0


def _cmd_encode(args: argparse.Namespace) -> int:
    tokenizer = load(args.model, args.data_dir)
    tokens = tokenizer.encode(_read_text(args), _allowed_special(args), args.workers)
    print(" ".join(str(tok) for tok in tokens))
    return 0


def _cmd_count(args: argparse.Namespace) -> int:
    tokenizer = load(args.model, args.data_dir)
    print(tokenizer.count_tokens(_read_text(args), _allowed_special(args)))
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    tokenizer = load(args.model, args.data_dir)
    tokens = args.tokens or [int(tok) for tok in sys.stdin.read().split()]
    sys.stdout.write(tokenizer.decode(tokens, errors="replace" if args.replace else "strict"))
    sys.stdout.write("\n")
    return 0


def _cmd_models(args: argparse.Namespace) -> int:
    print("encodings:")
    for name in list_encodings():
        print(f"  {name}")
    print("models:")
    for model in list_models():
        print(f"  {model:<32} {encoding_for_model(model)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oaitok", description="Byte-pair encoding tokenizer for OpenAI vocabularies."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding vocabulary files (default: $OAITOK_DATA_DIR or ~/.cache/oaitok).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Convert tiktoken encodings to .model files.")
    p_import.add_argument("encodings", nargs="+", choices=list_encodings())
    p_import.add_argument("--output", type=str, default=None, help="Output directory.")
    p_import.add_argument(
        "--vocab", action="store_true", help="Also write a human-readable .vocab file."
    )
    p_import.set_defaults(func=_cmd_import)

    for name, func, help_text in (
        ("encode", _cmd_encode, "Print the token ids of TEXT (or stdin)."),
        ("count", _cmd_count, "Print the number of tokens in TEXT (or stdin)."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("model", help="Model or encoding name.")
        p.add_argument("text", nargs="?", default=None)
        p.add_argument(
            "--allow-special",
            nargs="*",
            default=None,
            metavar="LITERAL",
            help="Special tokens to honour ('all' for every one).",
        )
        if name == "encode":
            p.add_argument("--workers", type=int, default=1, help="Chunk worker threads.")
        p.set_defaults(func=func)

    p_decode = sub.add_parser("decode", help="Print the text of token ids (or stdin).")
    p_decode.add_argument("model", help="Model or encoding name.")
    p_decode.add_argument("tokens", nargs="*", type=int)
    p_decode.add_argument(
        "--replace", action="store_true", help="Replace invalid UTF-8 instead of failing."
    )
    p_decode.set_defaults(func=_cmd_decode)

    p_models = sub.add_parser("models", help="List known encodings and models.")
    p_models.set_defaults(func=_cmd_models)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        return args.func(args)
    except OaitokError as e:
        log.debug("command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
