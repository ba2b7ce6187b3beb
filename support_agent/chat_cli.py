# support_agent/chat_cli.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from support_agent.config import GEMINI_MODEL, LOG_LEVEL, STORE_LATENCY_MS
from support_agent.db import DEFAULT_DB_PATH, ensure_schema
from support_agent.handlers import build_context
from support_agent.history import ChatHistory
from support_agent.mode_router import ChatRouter
from support_agent.seed_db import seed

EXIT_COMMANDS = {"exit", "quit"}


def main():
    parser = argparse.ArgumentParser(description="Customer support chat for order cancellations, returns and status.")
    parser.add_argument("--mode", choices=["rule", "llm", "auto"], default="auto",
                        help="rule=deterministic, llm=Gemini tool-calling, auto=try llm then fallback to rule on quota.")
    parser.add_argument("--model", default=GEMINI_MODEL, help="Gemini model name (llm/auto modes).")
    parser.add_argument("--db", type=Path, default=DEFAULT_DB_PATH, help="SQLite database path.")
    parser.add_argument("--conversation", default="console", help="Conversation id the session is stored under.")
    parser.add_argument("--seed", action="store_true", help="Reset the database with demo customers first.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if args.seed or not Path(args.db).exists():
        seed(args.db)
    ensure_schema(args.db)

    ctx = build_context(args.conversation, db_path=args.db, latency_ms=STORE_LATENCY_MS)
    history = ChatHistory(args.conversation, db_path=args.db)

    # every console run starts unauthenticated
    ctx.session.clear_session()
    history.clear()

    router = ChatRouter(ctx=ctx, mode=args.mode, gemini_model=args.model)

    print("Welcome to Customer Support! I can help with order cancellations, returns and shipment status.")
    print("Commands: 'history', 'clear', 'logout', 'exit'.")
    print(f"Mode: {args.mode}" + (f" | Model: {args.model}" if args.mode in {"llm", "auto"} else ""))

    while True:
        try:
            msg = input("\nYou: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            return

        if not msg:
            continue

        cmd = msg.lower()
        if cmd in EXIT_COMMANDS:
            print("Goodbye.")
            return
        if cmd == "history":
            print(history.render())
            continue
        if cmd == "clear":
            history.clear()
            ctx.session.clear_session()
            router.reset()
            print("Chat history and session cleared.")
            continue
        if cmd == "logout":
            ctx.session.clear_session()
            router.reset()
            print("You have been logged out.")
            continue

        history.add("user", msg)
        reply = router.respond(msg)
        history.add("assistant", reply)
        print("\nAgent:", reply)


if __name__ == "__main__":
    main()
