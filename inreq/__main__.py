"""
CLI entry point, when used as a module: `python -m inreq`.

Useful for debugging in the IDEs (use the start-mode "Module", module "inreq").
"""
from inreq import cli

if __name__ == '__main__':
    cli.main()
