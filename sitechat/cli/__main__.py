"""Allow ``python -m sitechat.cli`` execution."""

from sitechat.cli.ingest import main

main()
