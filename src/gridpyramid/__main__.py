"""Entry point for gridpyramid."""

import sys

from gridpyramid.preprocess.__main__ import main


if __name__ == "__main__":
    sys.exit(main())
