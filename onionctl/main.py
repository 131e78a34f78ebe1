#!/usr/bin/env python3
"""
onionctl - onion-relay CLI

Command-line interface for interacting with running nodes.

Usage:
    onionctl status     - Check which nodes are live
    onionctl nodes      - List relays known to the registry
    onionctl send       - Ask a user node to send a message
    onionctl inspect    - Show last-message state of a node
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

import httpx

from onionrelay.config import Config, DEFAULT_CONFIG_PATH


class OnionCtl:
    """onionctl CLI application."""

    def __init__(self, config: Config, client: Optional[httpx.Client] = None):
        """Initialize CLI with configuration."""
        self.config = config
        self.client = client or httpx.Client(timeout=config.transport.timeout)

    def _url(self, port: int, path: str) -> str:
        return f"http://{self.config.network.host}:{port}{path}"

    def _get_json(self, port: int, path: str) -> dict:
        response = self.client.get(self._url(port, path))
        response.raise_for_status()
        return response.json()

    def status(self, relays: int, users: int) -> int:
        """Check which nodes are live."""
        targets = [("registry", self.config.network.registry_port)]
        targets += [(f"relay {i}", self.config.relay_address(i)) for i in range(relays)]
        targets += [(f"user {i}", self.config.user_address(i)) for i in range(users)]

        print("onion-relay Node Status")
        print("=" * 40)

        down = 0
        for name, port in targets:
            try:
                response = self.client.get(self._url(port, "/status"))
                state = response.text if response.status_code == 200 else f"HTTP {response.status_code}"
            except httpx.HTTPError:
                state = "down"
                down += 1
            print(f"{name:<12} {port:<8} {state}")

        return 1 if down else 0

    def nodes(self) -> int:
        """List relays known to the registry."""
        try:
            result = self._get_json(self.config.network.registry_port, "/getNodeRegistry")
        except httpx.HTTPError as e:
            print(f"Failed to reach registry: {e}", file=sys.stderr)
            return 1

        nodes = result.get("nodes", [])

        if not nodes:
            print("No relays registered")
            return 0

        print(f"Registered Relays ({len(nodes)})")
        print("=" * 60)
        print(f"{'Node':<8} {'Address':<10} {'Public key':<40}")
        print("-" * 60)

        for node in nodes:
            pub_key = node.get("pubKey", "")[:36] + "..."
            print(f"{node.get('nodeId', '?'):<8} {node.get('address', '?'):<10} {pub_key:<40}")

        return 0

    def send(self, user_id: int, destination_user_id: int, message: str) -> int:
        """Ask a user node to send a message."""
        try:
            response = self.client.post(
                self._url(self.config.user_address(user_id), "/sendMessage"),
                json={"message": message, "destinationUserId": destination_user_id},
            )
        except httpx.HTTPError as e:
            print(f"Failed to reach user {user_id}: {e}", file=sys.stderr)
            return 1

        if response.status_code != 200:
            print(f"Error: {response.text}", file=sys.stderr)
            return 1

        print(f"Message sent from user {user_id} to user {destination_user_id}")
        return 0

    def inspect(self, kind: str, node_id: int) -> int:
        """Show last-message state of a node (needs inspection enabled)."""
        if kind == "relay":
            port = self.config.relay_address(node_id)
            paths = [
                ("Last encrypted", "/getLastReceivedEncryptedMessage"),
                ("Last decrypted", "/getLastReceivedDecryptedMessage"),
                ("Destination", "/getLastMessageDestination"),
            ]
        else:
            port = self.config.user_address(node_id)
            paths = [
                ("Last received", "/getLastReceivedMessage"),
                ("Last sent", "/getLastSentMessage"),
                ("Last circuit", "/getLastCircuit"),
            ]

        print(f"{kind.capitalize()} {node_id}")
        print("=" * 40)
        for label, path in paths:
            try:
                result = self._get_json(port, path).get("result")
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    print("Inspection is not enabled on this node", file=sys.stderr)
                    return 1
                print(f"Error: {e}", file=sys.stderr)
                return 1
            except httpx.HTTPError as e:
                print(f"Failed to reach {kind} {node_id}: {e}", file=sys.stderr)
                return 1
            print(f"{label + ':':<16} {result}")

        return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="onionctl",
        description="onion-relay CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  status      Check which nodes are live
  nodes       List relays known to the registry
  send        Ask a user node to send a message
  inspect     Show last-message state of a node

Examples:
  onionctl status --relays 3 --users 2
  onionctl nodes
  onionctl send 0 1 "Hello, onion!"
  onionctl inspect relay 2
""",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration file path",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # status command
    status_parser = subparsers.add_parser("status", help="Check which nodes are live")
    status_parser.add_argument("--relays", type=int, default=0, help="Relays to probe")
    status_parser.add_argument("--users", type=int, default=0, help="Users to probe")

    # nodes command
    subparsers.add_parser("nodes", help="List relays known to the registry")

    # send command
    send_parser = subparsers.add_parser("send", help="Send a message")
    send_parser.add_argument("user", type=int, help="Sending user number")
    send_parser.add_argument("destination", type=int, help="Recipient user number")
    send_parser.add_argument("message", help="Message to send")

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show last-message state")
    inspect_parser.add_argument("kind", choices=["relay", "user"], help="Node kind")
    inspect_parser.add_argument("id", type=int, help="Node number")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = Config.load(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    cli = OnionCtl(config)

    # Dispatch command
    if args.command == "status":
        return cli.status(args.relays, args.users)
    elif args.command == "nodes":
        return cli.nodes()
    elif args.command == "send":
        return cli.send(args.user, args.destination, args.message)
    elif args.command == "inspect":
        return cli.inspect(args.kind, args.id)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
