#!/usr/bin/env python3
"""Clipdesk Editing Agent CLI.

Talk to the video editing agent from a terminal, or serve it over HTTP.

Architecture:
    - AgentSettings reads provider, keys and limits from the environment
    - create_provider selects the Anthropic or OpenAI adapter
    - AgentOrchestrator runs the turn loop against the tool collaborator
      (an MCP tool server when MCP_SERVER_URL is set)

Environment Variables:
    - ANTHROPIC_API_KEY (or CLAUDE_API_KEY) / OPENAI_API_KEY
    - CLIPDESK_PROVIDER, CLIPDESK_MODEL (optional)
    - MCP_SERVER_URL: MCP tool server (optional)

Example Usage:
    $ python main.py                              # Interactive chat
    $ python main.py --provider openai            # Use GPT
    $ python main.py --serve --port 8080          # HTTP API

REPL commands:
    /history    Show the conversation
    /clear      Clear the conversation (keeps the system prompt)
    /quit       Exit
"""
import argparse
import asyncio
import sys

from clipdesk.agent import (
    AgentSettings,
    ChatEventType,
    ConfigurationError,
    ErrorType,
    MCPClient,
)
from clipdesk.agent.app import build_orchestrator, create_app
from clipdesk.agent.config import configure_logging


async def print_history(orchestrator) -> None:
    conversation = await orchestrator.get_history()
    for message in conversation.messages[1:]:
        label = message.role.value
        if message.tool_results:
            for result in message.tool_results:
                status = "ok" if result.success else f"failed: {result.error}"
                print(f"  [tool {result.tool_call_id}] {status}")
            continue
        if message.content:
            print(f"{label}: {message.content}")
        for call in message.tool_calls:
            print(f"  -> {call.name}({call.arguments})")
        if message.error:
            print(f"  (error: {message.error})")
    print(f"[Main] {len(conversation)} message(s) including system prompt")


async def send(orchestrator, text: str) -> None:
    stream = await orchestrator.send_message(text)
    try:
        async for event in stream:
            if event.type == ChatEventType.TEXT_DELTA:
                print(event.content, end="", flush=True)
            elif event.type == ChatEventType.TOOL_RESULTS:
                print()
                results = {r.tool_call_id: r for r in event.tool_results or []}
                for call in event.tool_calls or []:
                    result = results.get(call.id)
                    if result is None:
                        status = "no result"
                    elif result.success:
                        status = "ok"
                    else:
                        status = f"failed: {result.error}"
                    print(f"  [{call.name}] {status}")
            elif event.type == ChatEventType.ERROR:
                if event.error_type == ErrorType.CANCELLED:
                    print("\n[Main] Cancelled")
                else:
                    print(f"\n[Main] Error ({event.error_type.value}): {event.error}")
            elif event.type == ChatEventType.DONE:
                print()
    except asyncio.CancelledError:
        stream.cancel()
        raise


async def run_repl(settings: AgentSettings) -> None:
    orchestrator = build_orchestrator(settings)
    print(
        f"[Main] {orchestrator.llm.provider_name}/{orchestrator.llm.model_name} ready. "
        "Type /quit to exit."
    )

    try:
        while True:
            try:
                text = await asyncio.to_thread(input, "\n> ")
            except EOFError:
                break

            text = text.strip()
            if not text:
                continue
            if text in ("/quit", "/exit"):
                break
            if text == "/clear":
                await orchestrator.clear_history()
                print("[Main] Conversation cleared")
                continue
            if text == "/history":
                await print_history(orchestrator)
                continue

            await send(orchestrator, text)
    finally:
        await orchestrator.close()
        collaborator = orchestrator.tools.collaborator
        if isinstance(collaborator, MCPClient):
            await collaborator.close()
        await orchestrator.llm.close()


def main():
    parser = argparse.ArgumentParser(
        description="Clipdesk natural-language video editing agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Example Usage:")[1] if __doc__ else None,
    )

    provider_group = parser.add_argument_group("Provider Options")
    provider_group.add_argument(
        "--provider",
        type=str,
        help="LLM provider: anthropic (claude) or openai (gpt)"
    )
    provider_group.add_argument(
        "--model",
        type=str,
        help="Model name (default: provider default)"
    )
    provider_group.add_argument(
        "--env-file",
        type=str,
        metavar="FILE",
        help="Load environment variables from FILE"
    )

    server_group = parser.add_argument_group("Server Options")
    server_group.add_argument(
        "--serve",
        action="store_true",
        help="Serve the HTTP API instead of starting the REPL"
    )
    server_group.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Bind address for --serve (default: 127.0.0.1)"
    )
    server_group.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for --serve (default: 8000)"
    )

    args = parser.parse_args()

    try:
        settings = AgentSettings.from_env(args.env_file)
    except ConfigurationError as e:
        print(f"[Main] Configuration error: {e}")
        sys.exit(1)

    if args.provider:
        settings.provider = args.provider.lower()
    if args.model:
        settings.model = args.model

    configure_logging(settings.log_level if args.serve else "WARNING")

    if args.serve:
        import uvicorn

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return

    try:
        asyncio.run(run_repl(settings))
    except ConfigurationError as e:
        print(f"[Main] Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n[Main] Interrupted")


if __name__ == "__main__":
    main()
