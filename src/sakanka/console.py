"""Terminal front-end for the voice marketplace."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from functools import partial
from typing import List, Optional, Sequence

from .assistant import AssistantSession
from .audio.capture import RecordingSession
from .client import MarketplaceClient
from .confirmation import EDITABLE_FIELDS, ListingConfirmation
from .errors import MarketplaceError
from .languages import Language
from .logging_config import setup_logging
from .models import Action, Product, ProductDraft
from .settings import settings as runtime_settings

logger = logging.getLogger(__name__)

Ask = Callable[[str], Awaitable[str]]
Say = Callable[[str], None]


async def _ask_stdin(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


def _recording_factory() -> RecordingSession:
    capture = runtime_settings.capture
    return RecordingSession(sample_rate=capture.sample_rate, channels=capture.channels, device=capture.device)


def format_draft(draft: ProductDraft) -> str:
    return "\n".join(
        [
            f"  title:       {draft.title}",
            f"  description: {draft.description}",
            f"  price:       GH₵ {draft.price:.2f}",
            f"  quantity:    {draft.quantity}",
            f"  location:    {draft.location}",
            f"  language:    {draft.language.value}",
        ]
    )


def format_product(product: Product) -> str:
    place = product.location or "Not specified"
    phone = f" · {product.phone_number}" if product.phone_number else ""
    return f"{product.title} · GH₵ {product.price:.2f} × {product.quantity} · {place}{phone}"


async def record_once(ask: Ask, say: Say, factory: Callable[[], RecordingSession] = _recording_factory):
    """Record between two Enter presses; the device is released on every path."""
    with factory() as recording:
        await ask("Press Enter to start recording...")
        recording.start()
        say("Recording. Press Enter to stop.")
        await ask("")
        return recording.stop()


async def confirm_listing(
    draft: ProductDraft,
    *,
    writer: Callable[[ProductDraft], Awaitable[Product]],
    ask: Ask,
    say: Say,
) -> Optional[Product]:
    """Review loop: ``field=value`` edits, ``submit`` to publish, ``cancel`` to drop the draft."""
    confirmation = ListingConfirmation(draft, writer=writer)
    while True:
        say("Review your listing:")
        say(format_draft(confirmation.draft))
        answer = (await ask("Edit with field=value, or type submit / cancel: ")).strip()
        command = answer.lower()
        if command == "cancel":
            say("Listing discarded.")
            return None
        if command == "submit":
            try:
                product = await confirmation.submit()
            except MarketplaceError as exc:
                say(f"Error: {exc.message}")
                continue
            say("Product listed successfully!")
            return product
        field, sep, value = answer.partition("=")
        field = field.strip().lower()
        if not sep or field not in EDITABLE_FIELDS:
            say(f"Editable fields: {', '.join(EDITABLE_FIELDS)}")
            continue
        try:
            confirmation.edit(field, value)
        except MarketplaceError as exc:
            say(f"Error: {exc.message}")


async def sell_flow(
    client: MarketplaceClient,
    *,
    language: Language,
    access_token: str,
    ask: Ask,
    say: Say,
    recorder: Callable[[Ask, Say], Awaitable] = record_once,
) -> Optional[Product]:
    sample = await recorder(ask, say)
    say("Processing your voice...")
    text = await client.transcribe(sample, language=language)
    say(f"Heard: {text}")
    try:
        draft = await client.extract(text, language=language, action=Action.SELL)
    except MarketplaceError as exc:
        # Manual entry keeps the transcript as the description.
        say(f"Error: {exc.message}")
        say("Please fill in the details yourself.")
        draft = ProductDraft(description=text, original_text=text, language=language)
    writer = partial(client.create_product, access_token=access_token)
    return await confirm_listing(draft, writer=writer, ask=ask, say=say)


async def search_flow(
    client: MarketplaceClient,
    *,
    query: Optional[str],
    location: Optional[str],
    language: Language,
    ask: Ask,
    say: Say,
    recorder: Callable[[Ask, Say], Awaitable] = record_once,
) -> List[Product]:
    if not query:
        sample = await recorder(ask, say)
        query = await client.transcribe(sample, language=language)
        say(f"Searching for: {query}")
    products = await client.search(query, location=location)
    if not products:
        say("No products found.")
    for product in products:
        say(format_product(product))
    return products


async def assistant_flow(
    client: MarketplaceClient,
    *,
    language: Language,
    access_token: Optional[str],
    ask: Ask,
    say: Say,
) -> None:
    drafts: List[ProductDraft] = []

    def on_error(error: MarketplaceError) -> None:
        say(f"Error: {error.message}")

    session = AssistantSession(
        backend=client,
        language=language,
        session_factory=_recording_factory,
        on_product_extracted=drafts.append,
        on_error=on_error,
    )
    await session.greet()
    while True:
        answer = (await ask("Press Enter to speak, or q to quit: ")).strip().lower()
        if answer == "q":
            session.reset()
            return
        try:
            session.start_listening()
        except MarketplaceError:
            continue
        await ask("Listening... press Enter when done.")
        reply = await session.stop_listening()
        if reply:
            say(f"Assistant: {reply}")
        while drafts:
            draft = drafts.pop(0)
            if access_token is None:
                say("Sign in (SAKANKA_ACCESS_TOKEN) to publish listings.")
                say(format_draft(draft))
                continue
            writer = partial(client.create_product, access_token=access_token)
            await confirm_listing(draft, writer=writer, ask=ask, say=say)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sakanka", description="Voice marketplace for Ghanaian traders")
    parser.add_argument("--base-url", default=runtime_settings.service.base_url)
    parser.add_argument("--language", default=Language.TWI.value, choices=[lang.value for lang in Language])
    parser.add_argument("--token", default=os.getenv("SAKANKA_ACCESS_TOKEN"), help="seller access token")
    parser.add_argument("--log-level", default=runtime_settings.service.log_level)

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("sell", help="record a listing by voice and publish it")
    commands.add_parser("assistant", help="talk to the marketplace assistant")
    search = commands.add_parser("search", help="search listings by text or voice")
    search.add_argument("query", nargs="?")
    search.add_argument("--location")
    browse = commands.add_parser("browse", help="show the newest listings")
    browse.add_argument("--limit", type=int)
    return parser


async def run_command(args: argparse.Namespace, *, ask: Ask = _ask_stdin, say: Say = print) -> int:
    language = Language.parse(args.language, Language.TWI)
    client = MarketplaceClient(
        base_url=args.base_url,
        api_key=runtime_settings.service.api_key,
        timeout=runtime_settings.service.timeout,
    )
    try:
        if args.command == "sell":
            if not args.token:
                say("A seller access token is required (--token or SAKANKA_ACCESS_TOKEN).")
                return 2
            await sell_flow(client, language=language, access_token=args.token, ask=ask, say=say)
        elif args.command == "assistant":
            await assistant_flow(client, language=language, access_token=args.token, ask=ask, say=say)
        elif args.command == "search":
            await search_flow(
                client, query=args.query, location=args.location, language=language, ask=ask, say=say
            )
        elif args.command == "browse":
            products = await client.browse(limit=args.limit)
            for product in products:
                say(format_product(product))
            say(f"{len(products)} products")
    except MarketplaceError as exc:
        logger.warning("console.command.failed", extra={"command": args.command, "error": exc.message})
        say(f"Error: {exc.message}")
        return 1
    finally:
        await client.close()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, log_file=runtime_settings.service.log_file)
    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
