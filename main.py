"""
Entrypoint: load .env, then run the client CLI
"""

from rawclient.app import cli


if __name__ == "__main__":
    cli()
