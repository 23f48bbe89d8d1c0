#!/usr/bin/env python3
"""Check that the configured BitMart API key can read the wallet."""

import sys
import asyncio


async def check_key_status():
    """Call the public time endpoint and the signed wallet endpoint."""
    from bitmart_bot.models.config import Settings
    from bitmart_bot.integrations.bitmart_client import BitMartClient, BitMartAPIError

    settings = Settings()
    client = BitMartClient(
        api_key=settings.bitmart_api_key,
        api_secret=settings.bitmart_api_secret,
        api_memo=settings.bitmart_api_memo,
        base_url=settings.bitmart_base_url,
        futures_base_url=settings.bitmart_futures_base_url
    )

    try:
        print("Checking BitMart API key...")
        print(f"API URL: {settings.bitmart_base_url}")
        print(f"Has Memo: {bool(settings.bitmart_api_memo)}")

        health = await client.health_check()
        print(f"Public API: {health.get('status', 'unknown')}")
        if health.get("status") != "healthy":
            print(f"Error: {health.get('error')}")
            return False

        try:
            response = await client.get_account_balances()
        except BitMartAPIError as e:
            print(f"\nSigned request rejected: {e.message}")
            print("Check the key, secret and memo, and that the key has read permission.")
            return False

        balances = [b for b in client.extract_balances(response) if b.is_non_zero]
        print(f"\nKey accepted. {len(balances)} non-zero balances.")
        return True
    finally:
        await client.close()


async def main():
    """Main function."""
    print("BitMart API Key Checker\n")

    if await check_key_status():
        print("\n✅ Ready to trade!")
        return True

    print("\n❌ The bot will not be able to place orders with this key.")
    return False


if __name__ == "__main__":
    try:
        result = asyncio.run(main())
        sys.exit(0 if result else 1)
    except KeyboardInterrupt:
        print("\nCancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
