#!/usr/bin/env python3
from __future__ import annotations

import argparse


def main() -> None:
    parser = argparse.ArgumentParser(description="Fetch a song from a URL or local file, convert and analyze it")
    parser.add_argument("source", help="Video/audio platform URL or path to a local audio file")
    parser.add_argument("--save", metavar="DIR", help="Tag and write the result into DIR")
    parser.add_argument("--title", help="Override the title before saving")
    parser.add_argument("--artist", help="Override the artist before saving")
    parser.add_argument("--settings", help="Path to a settings YAML file")
    args = parser.parse_args()

    from tunegrab.core.jobs import SAVE_SLOT, SONG_SLOT
    from tunegrab.tools._common import get_runner, print_json, run_until_done

    runner = get_runner(args.settings)
    runner.start_query(args.source)
    song = run_until_done(runner, SONG_SLOT)

    if args.title:
        song.title = args.title
    if args.artist:
        song.artist = args.artist
    print_json(song)

    if args.save:
        runner.start_save(song, args.save)
        path = run_until_done(runner, SAVE_SLOT)
        print_json({"saved_to": str(path)})


if __name__ == "__main__":
    main()
