import sys

from xmrwatch.bot import main

if __name__ == "__main__":
    sys.exit(main())
