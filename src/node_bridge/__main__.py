"""node-bridge 入口点。

支持: python -m node_bridge
"""

import sys

from .app import main

if __name__ == "__main__":
    sys.exit(main())
