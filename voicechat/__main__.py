"""
Entry point for running the voice chat as a module:
    python -m voicechat server
    python -m voicechat client
"""

import argparse


def main():
    parser = argparse.ArgumentParser(prog="voicechat")
    parser.add_argument("component", choices=["server", "client"])
    args = parser.parse_args()

    if args.component == "server":
        from .server.main import run
    else:
        from .client.main import run
    run()


if __name__ == "__main__":
    main()
