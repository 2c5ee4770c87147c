#!/usr/bin/env python3
"""
Shipping Agent Client

A command-line client for the Shipping Agent API. The server keeps no conversation
state, so the client holds the history and sends it with every message.
"""

import argparse
import json
import sys
from typing import Any

import requests

from shipping_agent.infrastructure.platform_manager import create_logger

CLIENT_TIMEOUT = 60  # Seconds; the model call dominates the request time

logger = create_logger(logger_name="shipping-client", log_level="INFO")


def build_url(url: str, port: int | None, endpoint: str) -> str:
    if port is not None:
        return f"{url}:{port}{endpoint}"
    return f"{url}{endpoint}"


def send_chat(
    message: str,
    history: list[dict[str, str]],
    url: str = "http://127.0.0.1",
    port: int | None = 3001,
) -> tuple[str, list[dict[str, str]]]:
    """
    Send one message to the agent.

    Args:
        message: The message to send to the agent
        history: The conversation so far, as returned by the previous call
        url: The base URL of the agent server
        port: The port of the agent server

    Returns:
        (reply, history) where history already includes this exchange

    Raises:
        requests.RequestException: If the HTTP request fails
    """
    response = requests.post(
        build_url(url, port, "/chat"),
        headers={"Content-Type": "application/json"},
        json={"message": message, "history": history},
        timeout=CLIENT_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()

    reply = str(data.get("reply", ""))
    new_history = data.get("history")
    if not isinstance(new_history, list):
        # Older servers only return the reply
        new_history = [
            *history,
            {"role": "user", "content": message},
            {"role": "assistant", "content": reply},
        ]
    return reply, new_history


def list_shipments(url: str = "http://127.0.0.1", port: int | None = 3001) -> list[dict[str, Any]]:
    """Fetch the shipments, newest first."""
    response = requests.get(build_url(url, port, "/shipments"), timeout=CLIENT_TIMEOUT)
    response.raise_for_status()
    shipments = response.json()
    return shipments if isinstance(shipments, list) else []


def format_shipments(shipments: list[dict[str, Any]]) -> str:
    if not shipments:
        return "No shipments found."
    lines = [f"{'ID':<34} {'ROUTE':<40} {'WEIGHT':<10} {'ITEM':<20} STATUS"]
    for s in shipments:
        route = f"{s.get('origin', '')} -> {s.get('destination', '')}"
        lines.append(
            f"{s.get('id', ''):<34} {route:<40} {s.get('weight', ''):<10} "
            f"{s.get('item', ''):<20} {s.get('status', '')}"
        )
    return "\n".join(lines)


def chat_loop(url: str, port: int | None) -> None:
    """Read messages from stdin until EOF or 'exit', printing each reply."""
    history: list[dict[str, str]] = []
    while True:
        try:
            message = input("you> ").strip()
        except EOFError:
            return
        if not message:
            continue
        if message.lower() in ("exit", "quit"):
            return
        try:
            reply, history = send_chat(message, history, url=url, port=port)
        except requests.exceptions.RequestException as e:
            # History is left as it was before this message
            logger.error(f"Request failed: {e}")
            continue
        print(f"agent> {reply}")


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Shipping Agent Client - Talk to the Shipping Agent API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "How much to ship 500kg from Delhi to Mumbai?"
  %(prog)s --shipments
  %(prog)s                      (interactive chat)
        """,
    )

    parser.add_argument(
        "message",
        nargs="?",
        help="A single message to send; omit for an interactive chat",
    )

    parser.add_argument(
        "--url",
        default="http://127.0.0.1",
        help="Base URL of the agent server (default: http://127.0.0.1)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=3001,
        help="Port of the agent server (default: 3001)",
    )

    parser.add_argument(
        "--shipments",
        action="store_true",
        help="List the booked shipments instead of chatting",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON for --shipments",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main function to handle command line arguments and make the request."""
    args = parse_arguments(argv)

    try:
        if args.shipments:
            shipments = list_shipments(url=args.url, port=args.port)
            print(json.dumps(shipments, indent=2) if args.json else format_shipments(shipments))
        elif args.message:
            reply, _ = send_chat(args.message, [], url=args.url, port=args.port)
            print(reply)
        else:
            chat_loop(args.url, args.port)

    except requests.exceptions.RequestException as e:
        logger.error(f"Request failed: {e}")
        return 1
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing response: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Request cancelled by user")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
