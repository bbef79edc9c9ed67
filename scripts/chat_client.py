"""
LUX AI Interactive Terminal Client.

Supports:
- Guest chat (no account, nothing stored)
- Authenticated chat with a provider session token (conversations are stored)
- Listing and resuming existing conversations
"""

import argparse
import asyncio
import os

import httpx
from dotenv import load_dotenv

from luxai.services.events import aparse_event_lines

# Load environment variables from .env file
load_dotenv()

# ANSI Colors for better UX
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
BLUE = "\033[94m"
RESET = "\033[0m"
BOLD = "\033[1m"


async def stream_reply(client: httpx.AsyncClient, endpoint: str, payload: dict, headers: dict) -> str | None:
    """POST a message and print the streamed reply. Returns the full text, or None on error."""
    full_content = ""
    async with client.stream("POST", endpoint, json=payload, headers=headers) as response:
        if response.status_code != 200:
            error_text = await response.aread()
            print(f"{RED}Error {response.status_code}: {error_text.decode()}{RESET}")
            return None

        async for event in aparse_event_lines(response.aiter_lines()):
            content = event.get("content", "")
            print(content, end="", flush=True)
            full_content += content

    print()
    return full_content


async def pick_conversation(client: httpx.AsyncClient, url: str, headers: dict, title: str) -> int | None:
    """Reuse the most recent conversation with this title or create one."""
    response = await client.get(f"{url}/api/conversations", headers=headers)
    if response.status_code != 200:
        print(f"{RED}Could not list conversations: {response.text}{RESET}")
        return None

    for conversation in response.json():
        if conversation["title"] == title:
            print(f"{CYAN}Resuming conversation {conversation['id']} ({title}){RESET}")
            return conversation["id"]

    response = await client.post(f"{url}/api/conversations", json={"title": title}, headers=headers)
    if response.status_code != 200:
        print(f"{RED}Could not create conversation: {response.text}{RESET}")
        return None
    conversation = response.json()
    print(f"{GREEN}Created conversation {conversation['id']} ({title}){RESET}")
    return conversation["id"]


async def show_history(client: httpx.AsyncClient, url: str, headers: dict, conversation_id: int) -> None:
    response = await client.get(f"{url}/api/conversations/{conversation_id}/messages", headers=headers)
    if response.status_code != 200:
        print(f"{RED}Could not load messages: {response.text}{RESET}")
        return
    for message in response.json():
        color = BLUE if message["role"] == "user" else GREEN
        print(f"{color}{message['role']}{RESET}: {message['content']}")
    print()


async def chat_loop(url: str, token: str | None, title: str):
    """Main chat loop."""
    guest = token is None
    print(f"{BOLD}--- LUX AI CLI Client ---{RESET}")
    print(f"Target: {CYAN}{url}{RESET}")
    print(f"Mode:   {YELLOW if guest else GREEN}{'Guest (not saved)' if guest else 'Signed in (saved)'}{RESET}")
    print(f"\nType '{RED}exit{RESET}' or '{RED}quit{RESET}' to stop.")
    if not guest:
        print(f"Type '{BLUE}/history{RESET}' to show the stored conversation.\n")

    headers = {"Authorization": f"Bearer {token}"} if token else {}

    async with httpx.AsyncClient(timeout=600.0) as client:
        conversation_id = None
        if not guest:
            conversation_id = await pick_conversation(client, url, headers, title)
            if conversation_id is None:
                return

        while True:
            try:
                user_input = input(f"{BOLD}You > {RESET}")
            except EOFError:
                break

            if user_input.lower() in ["exit", "quit"]:
                break
            if not user_input.strip():
                continue
            if user_input.lower() == "/history":
                if conversation_id is not None:
                    await show_history(client, url, headers, conversation_id)
                continue

            print(f"{BOLD}LUX > {RESET}", end="", flush=True)

            try:
                if guest:
                    await stream_reply(client, f"{url}/api/guest/chat", {"message": user_input}, headers)
                else:
                    await stream_reply(
                        client,
                        f"{url}/api/conversations/{conversation_id}/messages",
                        {"content": user_input},
                        headers,
                    )
            except httpx.HTTPError as e:
                print(f"\n{RED}Stream interrupted: {e}{RESET}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="LUX AI Terminal Client")
    parser.add_argument("--url", default="http://localhost:8000", help="API Base URL")
    parser.add_argument("--token", help="Identity provider session token (omit for guest mode)")
    parser.add_argument("--title", default="Terminal session", help="Conversation title to create or resume")

    args = parser.parse_args()
    token = args.token or os.getenv("LUX_SESSION_TOKEN")

    try:
        asyncio.run(chat_loop(args.url.rstrip("/"), token, args.title))
    except KeyboardInterrupt:
        print("\nExiting...")


if __name__ == "__main__":
    main()
