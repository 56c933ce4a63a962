#!/usr/bin/env python3
"""
Safe StableFlip Startup Script

Checks the environment before handing over to the engine:
1. .env file exists and holds a signing key
2. Pairs file (if SF_PAIRS_FILE is set) is present
3. State and logs directories exist
4. Network banner and confirmation prompt
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def check_env_file():
    """Verify .env file exists and has a signing key."""
    env_file = Path('.env')

    if not env_file.exists():
        print("❌ ERROR: .env file not found")
        print("\nCreate .env file with:")
        print("  SF_PRIVATE_KEY=0x...")
        return False

    with open(env_file) as f:
        content = f.read()
        if 'SF_PRIVATE_KEY' not in content and 'PRIVATE_KEY' not in content:
            print("❌ ERROR: Missing credentials in .env")
            print("  Need SF_PRIVATE_KEY")
            return False

    print("✅ .env file present and valid")
    return True


def check_pairs_file():
    """The pairs file is optional; when configured it must exist."""
    path = os.getenv('SF_PAIRS_FILE')
    if not path:
        print(f"✅ Pairs from environment: {os.getenv('SF_PAIRS', 'AlphaUSD/pathUSD')}")
        return True
    if not Path(path).exists():
        print(f"❌ ERROR: {path} not found")
        return False
    print(f"✅ Pairs file present: {path}")
    return True


def check_state_directory():
    state_dir = Path(os.getenv('SF_STATE_FILE', 'state/state.json')).parent
    state_dir.mkdir(parents=True, exist_ok=True)
    print("✅ State directory ready")
    return True


def check_logs_directory():
    logs_dir = Path(os.getenv('SF_LOG_FILE', 'logs/stableflip.log') or 'logs/stableflip.log').parent
    logs_dir.mkdir(parents=True, exist_ok=True)
    print("✅ Logs directory ready")
    return True


def get_environment_mode():
    """Testnet unless the RPC URL says otherwise."""
    from stableflip.config.config import DEFAULT_RPC_URL

    rpc_url = os.getenv('SF_RPC_URL', DEFAULT_RPC_URL)
    testnet = 'testnet' in rpc_url.lower() or 'moderato' in rpc_url.lower()
    mode = 'TESTNET' if testnet else 'MAINNET'
    color = '🟡' if testnet else '🔴'

    print(f"\n{color} Running on: {mode}")
    print(f"   RPC: {rpc_url}")

    if not testnet:
        print("   ⚠️  MAINNET (real funds!)")
        print("   ⚠️  Make sure you've run on testnet first!")

    return testnet


def confirm_startup(auto_confirm: bool = False):
    print("\n" + "=" * 60)
    print("PRE-FLIGHT CHECKS")
    print("=" * 60)

    load_dotenv()
    checks = [
        check_env_file,
        check_pairs_file,
        check_state_directory,
        check_logs_directory,
    ]
    all_passed = True
    for check_func in checks:
        if not check_func():
            all_passed = False

    if not all_passed:
        print("\n❌ Pre-flight checks FAILED")
        print("Fix errors above and try again")
        return False

    print("\n✅ All pre-flight checks passed!")
    testnet = get_environment_mode()

    if auto_confirm:
        print("\n✅ Auto-confirm enabled (--no-confirm)")
        return True

    print("\n" + "=" * 60)
    print("STARTUP CONFIRMATION")
    print("=" * 60)
    print("\nBefore starting, confirm:")
    print("  □ Order size and internal buffer are correct")
    print("  □ Daily transaction and hourly cancel limits are appropriate")
    if not testnet:
        print("  □ You understand real funds are at risk")

    response = input("\nType 'START' to continue: ").strip().upper()
    if response != 'START':
        print("❌ Startup cancelled")
        return False

    print("\n✅ Starting engine...")
    return True


def main():
    import argparse
    import asyncio

    parser = argparse.ArgumentParser(description='StableFlip market maker')
    parser.add_argument('--no-confirm', action='store_true',
                        help='Skip startup confirmation (for systemd/automated use)')
    parser.add_argument('--once', action='store_true', help='Run a single quote pass')
    args = parser.parse_args()

    if not confirm_startup(auto_confirm=args.no_confirm):
        sys.exit(1)

    from stableflip.main import main as engine_main

    try:
        code = asyncio.run(engine_main(once=args.once))
    except KeyboardInterrupt:
        print("\n\n⏹️  Shutdown requested (Ctrl+C)")
        code = 0
    if code:
        print("\n❌ Engine exited with errors, check logs/stableflip.log")
    sys.exit(code)


if __name__ == '__main__':
    main()
