#!/usr/bin/env python3
"""
Health check script for the LLM gateway Docker container.
Used by Docker's HEALTHCHECK instruction; exits 0 when the gateway answers.
"""

import json
import os
import socket
import sys
import time
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

USER_AGENT = 'Docker-Health-Check/1.0'


def get_settings():
    """Read health check settings from environment variables."""
    return {
        'host': os.getenv('API_HOST', '0.0.0.0'),
        'port': int(os.getenv('API_PORT', 3000)),
        'timeout': int(os.getenv('HEALTH_CHECK_TIMEOUT', 10)),
        'max_retries': int(os.getenv('HEALTH_CHECK_RETRIES', 3)),
        'retry_delay': float(os.getenv('HEALTH_CHECK_RETRY_DELAY', 1.0)),
    }


def port_is_open(host, port, timeout=5):
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def fetch_json(url, timeout):
    """GET a JSON document, returning None on any HTTP or decoding failure."""
    try:
        request = Request(url, headers={'User-Agent': USER_AGENT})
        with urlopen(request, timeout=timeout) as response:
            if response.status != 200:
                return None
            return json.loads(response.read().decode('utf-8'))
    except (URLError, HTTPError, json.JSONDecodeError):
        return None


def gateway_is_healthy(base_url, timeout):
    data = fetch_json(f"{base_url}/health", timeout)
    return bool(data) and data.get('status') == 'healthy'


def voices_are_listed(base_url, timeout):
    """Check that the TTS route answers; the fallback list counts as an answer."""
    data = fetch_json(f"{base_url}/api/tts/voices", timeout)
    return bool(data) and len(data.get('voices', [])) > 0


def perform_health_check():
    settings = get_settings()
    # 0.0.0.0 is a bind address, not a destination
    host = 'localhost' if settings['host'] == '0.0.0.0' else settings['host']
    port = settings['port']
    timeout = settings['timeout']
    base_url = f"http://{host}:{port}"

    print(f"Health check starting for {host}:{port}")

    for attempt in range(1, settings['max_retries'] + 1):
        if not port_is_open(host, port):
            print(f"Attempt {attempt}: Port {port} is not open")
        elif gateway_is_healthy(base_url, timeout):
            if voices_are_listed(base_url, timeout):
                print("Health and TTS voice checks passed")
            else:
                print("TTS voice check failed, but the gateway itself is healthy")
            return True
        else:
            print(f"Attempt {attempt}: /health did not report healthy")

        if attempt < settings['max_retries']:
            time.sleep(settings['retry_delay'])

    print("All health check attempts failed")
    return False


def main():
    start_time = time.time()
    try:
        is_healthy = perform_health_check()
    except KeyboardInterrupt:
        print("Health check interrupted")
        sys.exit(1)

    duration = time.time() - start_time
    if is_healthy:
        print(f"✅ Health check passed in {duration:.2f}s")
        sys.exit(0)
    print(f"❌ Health check failed after {duration:.2f}s")
    sys.exit(1)


if __name__ == "__main__":
    main()
