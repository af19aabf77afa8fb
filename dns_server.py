"""DNS server that answers blocked names with the local block address."""

import logging
import socket
import sys
from typing import Optional

from dnslib import DNSError, DNSRecord, QTYPE, RR, A, AAAA, RCODE

from config import (
    UPSTREAM_DNS,
    UPSTREAM_DNS_PORT,
    DNS_HOST,
    DNS_PORT,
    BLOCK_IP,
    BLOCK_IPV6,
)
from logutil import log_exception_throttled
from rule_engine import RequestInterceptor

IS_WINDOWS = sys.platform == "win32"

logger = logging.getLogger(__name__)


class FocusGroupsDNS:
    """DNS server that redirects names covered by the installed intercept rule."""

    def __init__(
        self,
        interceptor: RequestInterceptor,
        host: str = DNS_HOST,
        port: int = DNS_PORT,
        upstream: str = UPSTREAM_DNS,
        upstream_port: int = UPSTREAM_DNS_PORT,
    ):
        self.interceptor = interceptor
        self.host = host
        self.port = port
        self.upstream = upstream
        self.upstream_port = upstream_port
        self.socket: Optional[socket.socket] = None
        self.running = False

    def is_domain_blocked(self, domain: str) -> bool:
        """
        Check if a domain should be blocked.

        Matches the domain itself and any subdomains of a blocked site.
        e.g., "old.reddit.com" matches "reddit.com"
        """
        return self.interceptor.blocks_host(domain)

    def resolve_upstream(self, request: DNSRecord) -> Optional[DNSRecord]:
        """Forward DNS request to the upstream server."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.settimeout(3)
            sock.sendto(request.pack(), (self.upstream, self.upstream_port))
            response_data, _ = sock.recvfrom(4096)
            return DNSRecord.parse(response_data)
        except (OSError, DNSError) as e:
            logger.debug("Upstream %s failed: %s", self.upstream, e)
            return None
        finally:
            sock.close()

    def create_blocked_response(self, request: DNSRecord) -> DNSRecord:
        """
        Create a DNS response that points the name at the block page.

        - For A queries: return BLOCK_IP
        - For AAAA queries: return BLOCK_IPV6
        - For other types (HTTPS/SVCB/CNAME/etc): return NXDOMAIN
        """
        reply = request.reply()
        qname = request.q.qname

        qtype = QTYPE[request.q.qtype]
        if qtype == "A":
            reply.add_answer(RR(qname, QTYPE.A, rdata=A(BLOCK_IP), ttl=60))
        elif qtype == "AAAA":
            reply.add_answer(RR(qname, QTYPE.AAAA, rdata=AAAA(BLOCK_IPV6), ttl=60))
        elif qtype == "ANY":
            reply.add_answer(RR(qname, QTYPE.A, rdata=A(BLOCK_IP), ttl=60))
            reply.add_answer(RR(qname, QTYPE.AAAA, rdata=AAAA(BLOCK_IPV6), ttl=60))
        else:
            reply.header.rcode = RCODE.NXDOMAIN

        return reply

    def handle_request(self, data: bytes, addr: tuple) -> bytes:
        """Handle incoming DNS request."""
        try:
            request = DNSRecord.parse(data)
        except DNSError:
            logger.debug("Dropping undecodable query from %s", addr)
            return b""

        qname = str(request.q.qname)
        if self.is_domain_blocked(qname):
            logger.info("Blocked %s for %s", qname.rstrip("."), addr[0])
            response = self.create_blocked_response(request)
        else:
            response = self.resolve_upstream(request)
            if response is None:
                response = request.reply()
                response.header.rcode = RCODE.SERVFAIL

        return response.pack()

    def start(self):
        """Start the DNS server."""
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            self.socket.bind((self.host, self.port))
        except PermissionError:
            hint = "Run as Administrator." if IS_WINDOWS else "Run with sudo."
            raise PermissionError(f"Cannot bind to port {self.port}. {hint}")
        except OSError as e:
            if "Address already in use" in str(e):
                raise OSError(
                    f"Port {self.port} is already in use. "
                    "Another DNS server may be running."
                )
            raise

        self.running = True
        logger.info("DNS server listening on %s:%d", self.host, self.port)

        sock = self.socket
        sock.settimeout(1.0)
        while self.running:
            try:
                try:
                    data, addr = sock.recvfrom(4096)
                except socket.timeout:
                    continue

                response = self.handle_request(data, addr)
                if response:
                    sock.sendto(response, addr)

            except OSError:
                if not self.running:
                    break
                log_exception_throttled(
                    logger,
                    "dns_server.loop",
                    interval_seconds=60.0,
                    message="DNS socket error",
                )
            except Exception:
                # One bad request must not take the resolver down
                log_exception_throttled(
                    logger,
                    "dns_server.request",
                    interval_seconds=60.0,
                    message="DNS request handling failed",
                )

    def stop(self):
        """Stop the DNS server."""
        self.running = False

        if self.socket:
            self.socket.close()
            self.socket = None
