"""Write the current environment to a JSON file as ``KEY=VALUE`` strings."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Mapping, Optional, Sequence


def clean_environ(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return ``KEY=VALUE`` entries, dropping any with an empty key."""
    source = os.environ if environ is None else environ
    return [f"{key}={value}" for key, value in source.items() if key]


def write_environ(output_file: str, environ: Optional[Mapping[str, str]] = None) -> None:
    """Write the cleaned environment to ``output_file`` as a JSON array."""
    payload = json.dumps(clean_environ(environ), separators=(",", ":"), ensure_ascii=False)
    with open(output_file, "w", encoding="utf-8") as out:
        out.write(payload)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="getenv")
    parser.add_argument(
        "-output", "--output", dest="output", default="", help="output file for the environment"
    )
    args = parser.parse_args(argv)

    if not args.output:
        print("output file must not be empty", file=sys.stderr)
        return 1
    try:
        write_environ(args.output)
    except OSError:
        print(f"cannot write to output file: '{args.output}'", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())