#!/usr/bin/env python3
from __future__ import annotations

import argparse


def main() -> None:
    parser = argparse.ArgumentParser(description="Show how a source reference would be fetched")
    parser.add_argument("source", help="URL or local path")
    args = parser.parse_args()

    from tunegrab.core.origin import classify
    from tunegrab.tools._common import print_json

    print_json({"source": args.source, "origin": classify(args.source).value})


if __name__ == "__main__":
    main()
