"""
Automated Savings Walkthrough

Demonstrates round-up savings and a monthly subscription against an
in-memory token book.
"""

from autosave.clock import ManualClock
from autosave.config import AutosaveConfig
from autosave.constants import ACCRUAL_INTERVAL_SECONDS
from autosave.exceptions import PrematureCollection
from autosave.instructions import encode_execute, encode_token_transfer
from autosave.pipeline import build_pipeline
from autosave.tokens import MockToken, TokenBook


ACCOUNT = '0x742d35cc6634c0532925a3b844bc9e7595f0beb0'
MERCHANT = '0x5fbdb2315678afecb367f032d93f642f64180aa3'
SAVINGS = '0x70997970c51812dc3a010c7d01b50e0d17dc79c8'
STREAMING = '0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc'
USDC = '0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48'


def example_round_up(pipeline, book):
    """Example: A $0.90 purchase rounds up to $1.00."""

    pipeline.engine.register(ACCOUNT, 0, SAVINGS, 1_000_000)

    calldata = encode_execute(USDC, 0, encode_token_transfer(MERCHANT, 900_000))
    receipt = pipeline.execute_transfer(ACCOUNT, calldata)

    usdc = book.get(USDC)
    print(f"Merchant received: {usdc.balance_of(MERCHANT)}")
    print(f"Saved:             {receipt.saved}")
    print(f"Savings balance:   {usdc.balance_of(SAVINGS)}")

    return receipt


def example_subscription(pipeline, book, clock):
    """Example: A payee pulls 10 native units every four weeks."""

    pipeline.ledger.subscribe(STREAMING, ACCOUNT, 10)

    try:
        pipeline.collect_subscription(STREAMING, ACCOUNT, 10)
    except PrematureCollection as e:
        print(f"Too early, collectable at {e.next_collectable_at}")

    clock.advance(ACCRUAL_INTERVAL_SECONDS)
    pipeline.collect_subscription(STREAMING, ACCOUNT, 10)
    print(f"Payee native balance: {book.native_balance_of(STREAMING)}")
    print(f"Next collection at:   {pipeline.ledger.next_collection_time(STREAMING, ACCOUNT)}")


def main():
    """Run all examples."""

    print("=" * 70)
    print("autosave Examples")
    print("=" * 70)
    print()

    book = TokenBook()
    book.deploy(MockToken("USD Coin", "USDC", USDC)).mint(ACCOUNT, 10_000_000)
    book.fund(ACCOUNT, 1_000)

    clock = ManualClock(1_700_000_000)
    pipeline = build_pipeline(AutosaveConfig(), book, clock=clock)

    print("1. Round-up on a token transfer...")
    example_round_up(pipeline, book)
    print()

    print("2. Collecting a subscription...")
    example_subscription(pipeline, book, clock)
    print()

    print("=" * 70)
    print("Examples complete!")
    print("=" * 70)


if __name__ == '__main__':
    main()
