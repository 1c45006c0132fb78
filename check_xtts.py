#!/usr/bin/env python3
"""Quick diagnostic: is the XTTS service running and able to synthesize?

Usage: python check_xtts.py [port]
Uses XTTS_URL when set, otherwise http://localhost:<port>.
"""

import asyncio
import os
import sys
import time

import httpx

from llm_gateway.backends.http import UpstreamError
from llm_gateway.tts_engine import (
    MalformedContainerError,
    SpeakerProfileCache,
    XTTSClient,
    parse_wav_clip
)

DEFAULT_SPEAKER = "Claribel Dervla"
TEST_TEXT = "Hello, this is a test."


def print_troubleshooting():
    print("💡 Troubleshooting:")
    print("   - Check if the XTTS container is running: docker ps | grep xtts")
    print("   - Start the service: docker-compose up -d xtts")
    print("   - Check logs: docker logs xtts")
    print("   - Verify the port mapping in docker-compose.yml\n")


async def check_xtts(xtts_url: str) -> bool:
    print(f"🔍 Checking XTTS service at: {xtts_url}\n")

    async with httpx.AsyncClient() as client:
        xtts = XTTSClient(xtts_url, client, timeout=5.0)

        print("1️⃣  Testing connection...")
        try:
            languages = await xtts.list_languages()
        except UpstreamError as e:
            print("   ❌ Cannot connect to XTTS service")
            print(f"   Error: {e}\n")
            print_troubleshooting()
            return False
        print("   ✅ Service is running")
        print(f"   Supported languages: {', '.join(languages)}\n")

        print("2️⃣  Testing speakers endpoint...")
        speakers = SpeakerProfileCache(xtts.fetch_speakers)
        try:
            names = await speakers.names()
        except UpstreamError as e:
            print(f"   ❌ Failed to fetch speakers: {e}\n")
            return False
        more = "..." if len(names) > 5 else ""
        print(f"   ✅ Found {len(names)} speakers")
        print(f"   Available: {', '.join(names[:5])}{more}\n")

        print("3️⃣  Testing TTS generation (short text)...")
        profile = await speakers.get(DEFAULT_SPEAKER)
        if profile is None:
            print(f'   ⚠️  Default speaker "{DEFAULT_SPEAKER}" not found\n')
            return False

        print(f'   Text: "{TEST_TEXT}" ({len(TEST_TEXT)} chars)')
        xtts.timeout = 60.0
        start_time = time.time()
        try:
            audio = await xtts.synthesize(TEST_TEXT, "en", profile)
        except UpstreamError as e:
            print(f"   ❌ TTS generation failed: {e}\n")
            return False
        elapsed = time.time() - start_time

        try:
            clip = parse_wav_clip(audio)
        except MalformedContainerError as e:
            print(f"   ❌ XTTS returned audio without a WAV data chunk: {e}\n")
            return False

        print(f"   ✅ Generated {len(audio)} bytes in {elapsed:.1f}s")
        if clip.format:
            print(f"   Format: {clip.format.sample_rate} Hz, {clip.format.channels} channel(s), "
                  f"{clip.format.bits_per_sample} bit\n")

    print("✅ XTTS service is working correctly!")
    return True


def main():
    port = sys.argv[1] if len(sys.argv) > 1 else os.getenv("XTTS_PORT", "8000")
    xtts_url = os.getenv("XTTS_URL", f"http://localhost:{port}")

    print("XTTS Service Diagnostic Check")
    print("=" * 40 + "\n")

    ok = asyncio.run(check_xtts(xtts_url))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
