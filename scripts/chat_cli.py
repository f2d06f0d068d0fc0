import argparse
import asyncio
import os
import sys

from loguru import logger

# Add project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from relaychat.client.api_client import ChatAPIClient
from relaychat.client.controller import ChatController, ChatState
from relaychat.client.sidebar import SidebarController


class TerminalRenderer:
    """Prints the in-progress assistant message as fragments arrive."""

    def __init__(self):
        self.printed = 0

    def __call__(self, controller: ChatController) -> None:
        if controller.state != ChatState.AWAITING_ASSISTANT_STREAM:
            return
        if not controller.messages or controller.messages[-1].role != "assistant":
            return
        content = controller.messages[-1].content
        sys.stdout.write(content[self.printed:])
        sys.stdout.flush()
        self.printed = len(content)

    def reset(self) -> None:
        self.printed = 0


def notify(message: str) -> None:
    print(f"\n[!] {message}")


async def choose_conversation(sidebar: SidebarController, controller: ChatController) -> bool:
    await sidebar.refresh()
    for group in sidebar.groups():
        print(f"\n{group.label}")
        for item in group.items:
            print(f"  {item.id:>5}  {item.title}")

    choice = (await asyncio.to_thread(input, "\nConversation id (empty for a new one): ")).strip()
    if not choice:
        item = await sidebar.new_conversation()
        if item is None:
            return False
        choice = item.id
    sidebar.select(choice)
    await controller.select_conversation(choice)
    return controller.state == ChatState.READY


async def run(base_url: str) -> None:
    renderer = TerminalRenderer()
    async with ChatAPIClient(base_url=base_url) as api:
        sidebar = SidebarController(api, notify=notify)
        controller = ChatController(api, on_change=renderer, notify=notify)

        if not await choose_conversation(sidebar, controller):
            return

        for message in controller.messages:
            print(f"{message.role}> {message.content}")

        while True:
            try:
                text = await asyncio.to_thread(input, "\nyou> ")
            except EOFError:
                break
            if text.strip() in ("/quit", "/exit"):
                break
            renderer.reset()
            sys.stdout.write("assistant> ")
            if not await controller.submit(text):
                print("(not sent)")
            print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with a relaychat server from the terminal.")
    parser.add_argument("--url", default=os.getenv("RELAYCHAT_URL", "http://localhost:8000"))
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level="WARNING")
    asyncio.run(run(args.url))


if __name__ == "__main__":
    main()
