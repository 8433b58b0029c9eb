import sys

from mcp_git.cli import main

sys.exit(main())
