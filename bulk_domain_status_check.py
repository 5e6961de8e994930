#!/usr/bin/env python3
"""
Bulk domain status check.

Reads (domain, category) rows from a CSV file, sends one HTTPS GET per domain
through a fixed pool of workers and prints a line per result followed by a
summary (status code distribution and per-category counts).
"""

import asyncio
import csv
import logging
import ssl
import sys
import time
from collections import Counter
from dataclasses import dataclass, field

import httpx

INPUT_FILE = "domains2.csv"
WORKERS = 10
REQUEST_TIMEOUT = 10.0  # per request deadline
CLIENT_TIMEOUT = 10.0
DELAY = 0.1  # pause after every job, per worker
DOMAIN_LIMIT = None  # e.g. 200 to only check the first rows
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# ValueError covers names that fail IDNA encoding (idna.IDNAError)
REQUEST_BUILD_ERRORS = (httpx.InvalidURL, ValueError)
PROBE_ERRORS = (httpx.HTTPError, ssl.SSLError, asyncio.TimeoutError)

logger = logging.getLogger(__name__)


class DomainLoadError(Exception):
    """The input file could not be read."""


@dataclass(frozen=True)
class Domain:
    name: str
    category: str


@dataclass
class ProbeResult:
    domain: Domain
    status_code: int | None = None
    error: Exception | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CategoryStats:
    total: int = 0
    success: int = 0
    failed: int = 0


@dataclass
class Summary:
    total: int = 0
    successful: int = 0
    failed: int = 0
    status_codes: Counter = field(default_factory=Counter)
    categories: dict[str, CategoryStats] = field(default_factory=dict)

    def add(self, result: ProbeResult) -> None:
        stats = self.categories.setdefault(result.domain.category, CategoryStats())
        self.total += 1
        stats.total += 1
        if result.ok:
            self.successful += 1
            stats.success += 1
            self.status_codes[result.status_code] += 1
        else:
            self.failed += 1
            stats.failed += 1


def find_bare_quote(record: str) -> bool:
    """Return True if a ``"`` appears inside an unquoted field of a raw CSV record."""
    state = "start"
    for ch in record.rstrip("\r\n"):
        if state == "start":
            state = "quoted" if ch == '"' else "start" if ch == "," else "unquoted"
        elif state == "unquoted":
            if ch == '"':
                return True
            if ch == ",":
                state = "start"
        elif state == "quoted":
            if ch == '"':
                state = "quote"
        elif ch == '"':
            state = "quoted"
        else:
            state = "start"
    return False


def load_domains(path) -> list[Domain]:
    """
    Read domains from a CSV file.

    The first row is a header and is skipped. Column 0 is the domain name,
    column 1 the category; further columns are ignored. Rows with fewer than
    two columns are skipped, any other row must have as many fields as the
    header.

    Raises:
        DomainLoadError: file cannot be opened, has no header row, is not
            valid CSV (including a bare `"` inside an unquoted field) or has a
            row whose field count differs from the header.
    """
    raw = []

    def lines(f):
        for line in f:
            raw.append(line)
            yield line

    try:
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.reader(lines(f), strict=True)
            try:
                header = next(reader)
            except StopIteration:
                raise DomainLoadError(f"error reading header: {path} is empty") from None
            domains = []
            raw.clear()
            for row in reader:
                record = "".join(raw)
                raw.clear()
                if find_bare_quote(record):
                    raise DomainLoadError(
                        f'error reading record: line {reader.line_num}: bare " in non-quoted field'
                    )
                if len(row) < 2:
                    continue
                if len(row) != len(header):
                    raise DomainLoadError(
                        f"error reading record: line {reader.line_num}: "
                        f"expected {len(header)} fields, got {len(row)}"
                    )
                domains.append(Domain(name=row[0], category=row[1]))
    except OSError as exc:
        raise DomainLoadError(f"error opening file: {exc}") from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise DomainLoadError(f"error reading record: {exc}") from exc
    return domains


def make_client(timeout=CLIENT_TIMEOUT, transport=None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=False,
        transport=transport,
    )


def error_message(exc: Exception) -> str:
    # httpx timeouts and asyncio.TimeoutError usually have no message
    return str(exc) or type(exc).__name__


async def probe(client: httpx.AsyncClient, domain: Domain, timeout=REQUEST_TIMEOUT) -> ProbeResult:
    """Send one GET to https://<domain> and record its status or error."""
    result = ProbeResult(domain=domain)
    start = time.perf_counter()
    try:
        request = client.build_request("GET", f"https://{domain.name}")
    except REQUEST_BUILD_ERRORS as exc:
        result.error = exc
        result.duration = time.perf_counter() - start
        return result

    try:
        response = await asyncio.wait_for(client.send(request, stream=True), timeout)
    except PROBE_ERRORS as exc:
        result.error = exc
        result.duration = time.perf_counter() - start
    else:
        result.duration = time.perf_counter() - start
        result.status_code = response.status_code
        await response.aclose()
    return result


async def worker(
    worker_id,
    jobs: asyncio.Queue,
    results: asyncio.Queue,
    delay=DELAY,
    request_timeout=REQUEST_TIMEOUT,
    client_timeout=CLIENT_TIMEOUT,
    transport=None,
):
    logger.debug("Worker %s started", worker_id)
    async with make_client(client_timeout, transport) as client:
        while True:
            domain = await jobs.get()
            if domain is None:
                break
            await results.put(await probe(client, domain, request_timeout))
            await asyncio.sleep(delay)
    logger.debug("Worker %s finished", worker_id)


def format_result(result: ProbeResult) -> str:
    domain = result.domain
    if not result.ok:
        return (
            f"❌ {domain.name} ({domain.category}) - "
            f"Error: {error_message(result.error)} [{result.duration:.3f}s]"
        )
    icon = "⚠️" if result.status_code >= 400 else "✅"
    return (
        f"{icon} {domain.name} ({domain.category}) - "
        f"Status: {result.status_code} [{result.duration:.3f}s]"
    )


async def collect(results: asyncio.Queue, summary: Summary) -> Summary:
    """Drain results until the queue is closed, printing one line each."""
    while True:
        result = await results.get()
        if result is None:
            return summary
        summary.add(result)
        print(format_result(result))


async def run_checks(
    domains,
    workers=WORKERS,
    delay=DELAY,
    request_timeout=REQUEST_TIMEOUT,
    client_timeout=CLIENT_TIMEOUT,
    transport=None,
) -> Summary:
    """
    Check every domain with a fixed pool of workers and return the totals.

    The job queue is closed with one ``None`` per worker once all domains are
    queued. When every worker has returned, a supervisor task closes the result
    queue with a single ``None``, which ends the collection loop.
    """
    jobs = asyncio.Queue(maxsize=len(domains) + workers)
    results = asyncio.Queue(maxsize=len(domains) + 1)

    tasks = [
        asyncio.create_task(
            worker(w, jobs, results, delay, request_timeout, client_timeout, transport)
        )
        for w in range(1, workers + 1)
    ]

    for domain in domains:
        jobs.put_nowait(domain)
    for _ in tasks:
        jobs.put_nowait(None)

    async def close_results():
        try:
            await asyncio.gather(*tasks)
        finally:
            await results.put(None)

    supervisor = asyncio.create_task(close_results())

    print("Processing domains...")
    print("=" * 37)
    summary = await collect(results, Summary())
    await supervisor
    return summary


def print_summary(summary: Summary) -> None:
    print("\n" + "=" * 37)
    print("SUMMARY")
    print("=" * 37)
    print(f"Total domains checked: {summary.total}")
    print(f"Successful: {summary.successful}")
    print(f"Failed: {summary.failed}\n")

    print("Status Code Distribution:")
    for code, count in summary.status_codes.items():
        print(f"  {code}: {count} domains")

    print("\nCategory Statistics:")
    for category, stats in summary.categories.items():
        print(
            f"  {category}: Total={stats.total}, "
            f"Success={stats.success}, Failed={stats.failed}"
        )


def main(
    input_file=INPUT_FILE,
    limit=DOMAIN_LIMIT,
    workers=WORKERS,
    delay=DELAY,
    transport=None,
) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        domains = load_domains(input_file)
    except DomainLoadError as exc:
        logger.error(f"Error reading CSV: {exc}")
        return 1

    if limit is not None:
        domains = domains[:limit]

    print(f"Loaded {len(domains)} domains from CSV")
    print(f"Starting {workers} workers...\n")

    summary = asyncio.run(
        run_checks(domains, workers=workers, delay=delay, transport=transport)
    )
    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
