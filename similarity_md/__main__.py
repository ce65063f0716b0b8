import sys

from similarity_md.cli import main

if __name__ == "__main__":
    sys.exit(main())
