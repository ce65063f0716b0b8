#!/usr/bin/env python3
"""Run duplicate detection from a source checkout (same options as `similarity-md`)."""
import sys

from similarity_md.cli import main

if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
