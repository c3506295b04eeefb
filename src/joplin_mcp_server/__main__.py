import sys

from joplin_mcp_server.server import main

sys.exit(main())
