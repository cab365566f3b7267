from cinesift.interfaces.cli.cli import start

raise SystemExit(start())
