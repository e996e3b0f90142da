import sys

from stars_categorizer.cli import main

if __name__ == "__main__":
    sys.exit(main())
