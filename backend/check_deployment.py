"""
Deployment check for the Scoper chat relay.

This script:
1. Calls the liveness endpoint and reports the environment
2. Sends a CORS preflight and checks the returned headers
3. Sends one chat message and checks the response shape

Usage:
    python check_deployment.py --api-url https://relay.example.com --origin https://app.example.com
"""
import argparse
import sys
from dataclasses import dataclass
from typing import List, Optional

import httpx

DEFAULT_TEST_MESSAGE = "Hello, can you help me with my business?"


@dataclass
class CheckResult:
    """Outcome of a single deployment check."""
    name: str
    passed: bool
    detail: str = ""


class DeploymentChecker:
    """Runs smoke checks against a deployed relay."""

    def __init__(
        self,
        api_url: str,
        origin: str,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.origin = origin
        self.timeout = timeout
        self.transport = transport
        self.results: List[CheckResult] = []

    def check_health(self, client: httpx.Client) -> CheckResult:
        try:
            response = client.get(f"{self.api_url}/")
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return CheckResult("health", False, str(e))

        if response.status_code == 200 and data.get("status") == "ok":
            return CheckResult("health", True, f"environment: {data.get('environment', 'unknown')}")
        return CheckResult("health", False, f"unexpected response {response.status_code}: {data}")

    def check_preflight(self, client: httpx.Client) -> CheckResult:
        try:
            response = client.options(
                f"{self.api_url}/chat",
                headers={
                    "Origin": self.origin,
                    "Access-Control-Request-Method": "POST",
                },
            )
        except httpx.HTTPError as e:
            return CheckResult("cors preflight", False, str(e))

        allowed_origin = response.headers.get("Access-Control-Allow-Origin")
        allowed_methods = response.headers.get("Access-Control-Allow-Methods", "")
        if response.status_code == 200 and allowed_origin and "POST" in allowed_methods:
            note = "" if allowed_origin == self.origin else " (origin not in allow-list)"
            return CheckResult("cors preflight", True, f"allow-origin: {allowed_origin}{note}")
        return CheckResult("cors preflight", False, f"status {response.status_code}, headers {dict(response.headers)}")

    def check_chat(self, client: httpx.Client, message: str) -> CheckResult:
        try:
            response = client.post(
                f"{self.api_url}/chat",
                json={"message": message, "conversationHistory": []},
                headers={"Origin": self.origin},
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return CheckResult("chat", False, str(e))

        if response.status_code == 200 and data.get("response") and data.get("error") is None:
            preview = data["response"][:80].replace("\n", " ")
            return CheckResult("chat", True, f"reply: {preview}...")
        return CheckResult("chat", False, f"status {response.status_code}: {data.get('error')}")

    def run(self, message: str) -> bool:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            self.results = [
                self.check_health(client),
                self.check_preflight(client),
                self.check_chat(client, message),
            ]
        return all(result.passed for result in self.results)


def main():
    """Run the deployment checks and print a summary."""
    parser = argparse.ArgumentParser(
        description="Smoke checks for a deployed Scoper chat relay"
    )
    parser.add_argument(
        "--api-url",
        default="http://localhost:8787",
        help="Base URL of the relay (default: http://localhost:8787)"
    )
    parser.add_argument(
        "--origin",
        default="http://localhost:5173",
        help="Origin to present in CORS checks (default: http://localhost:5173)"
    )
    parser.add_argument(
        "--message",
        default=DEFAULT_TEST_MESSAGE,
        help="Message sent in the chat check"
    )
    args = parser.parse_args()

    print(f"Checking deployment at {args.api_url}\n")
    checker = DeploymentChecker(api_url=args.api_url, origin=args.origin)
    passed = checker.run(args.message)

    for i, result in enumerate(checker.results, start=1):
        mark = "PASS" if result.passed else "FAIL"
        print(f"{i}. [{mark}] {result.name}: {result.detail}")

    print()
    print("All checks passed." if passed else "Some checks failed.")
    sys.exit(0 if passed else 1)


if __name__ == "__main__":
    main()
