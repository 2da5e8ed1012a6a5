"""
Generate a secure API key for the API_KEYS setting.

    python scripts/generate_api_key.py
"""
import secrets


def generate_api_key() -> str:
    # 32 random bytes, hex encoded
    api_key = secrets.token_hex(32)

    print("=" * 46)
    print("New API Key Generated")
    print("=" * 46)
    print(f"API Key: {api_key}")
    print()
    print("1. Add this key to your .env file:")
    print(f"   API_KEYS={api_key}")
    print("2. Keep this key secure and never commit it!")
    print("3. For multiple keys, separate with commas:")
    print("   API_KEYS=key1,key2,key3")
    print("=" * 46)
    return api_key


if __name__ == "__main__":
    generate_api_key()
