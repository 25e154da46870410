#!/usr/bin/env python3
from __future__ import annotations

import argparse


def main() -> None:
    parser = argparse.ArgumentParser(description="Load a local audio file and shift its volume by a dB offset")
    parser.add_argument("path", help="Path to a local audio file")
    parser.add_argument("offset", help="Gain to apply in dB, e.g. 3 or -2.5")
    parser.add_argument("--save", metavar="DIR", help="Tag and write the result into DIR")
    parser.add_argument("--settings", help="Path to a settings YAML file")
    args = parser.parse_args()

    from tunegrab.core.jobs import SAVE_SLOT, SONG_SLOT
    from tunegrab.core.volume import parse_volume_offset
    from tunegrab.tools._common import get_runner, print_json, run_until_done

    try:
        offset = parse_volume_offset(args.offset)
    except ValueError as exc:
        parser.error(str(exc))

    runner = get_runner(args.settings)
    runner.start_query(args.path)
    before = run_until_done(runner, SONG_SLOT)

    runner.start_volume_offset(offset)
    after = run_until_done(runner, SONG_SLOT)
    print_json({"volume_before_db": round(before.volume, 2), "volume_after_db": round(after.volume, 2)})

    if args.save:
        runner.start_save(destination=args.save)
        path = run_until_done(runner, SAVE_SLOT)
        print_json({"saved_to": str(path)})


if __name__ == "__main__":
    main()
