# tools/run_check.py
# Usage examples:
#   python3 -m tools.run_check fake
#   python3 -m tools.run_check fake --expect none
#   python3 -m tools.run_check --from client-1 --to 10.65.0.2 --port 8055 --expect some --timeout 20

import sys
import logging
import argparse
from typing import get_args
from conncheck.config import Settings
from conncheck.engine.controller import Checker
from conncheck.errors import ConfigurationError, ConnectivityError
from conncheck.schemas import ProtocolName

def run_with_fake(args):
    from conncheck.prober.fake import FakeWorkload, reply_from
    port = args.port or 8055
    server = FakeWorkload("server", "10.65.0.2", default_port=port)
    client = FakeWorkload(
        "client", "10.65.0.1",
        # the fake network always answers, so "none" is the failing case
        default=reply_from("10.65.0.1:40000"),
    )
    cc = Checker(build_settings(args))
    expect(cc, args.expect, client, server, port)
    return run(cc, args)

def run_with_docker(args):
    from conncheck.prober.docker import DockerProber, Workload
    from conncheck.prober.targets import TargetIP
    s = build_settings(args)
    client = Workload(args.source, args.source_ip or "",
                      prober=DockerProber(args.source, docker_bin=s.docker_bin, binary=s.test_connection_bin))
    cc = Checker(s)
    expect(cc, args.expect, client, TargetIP(args.target), args.port)
    return run(cc, args)

def expect(cc, mode, src, dst, port):
    if mode == "some":
        cc.expect_some(src, dst, port)
    else:
        cc.expect_none(src, dst, port)

def run(cc, args):
    try:
        cc.check_connectivity_with_timeout(args.timeout)
    except ConnectivityError as e:
        print(str(e))
        return 1
    print("Connectivity as expected")
    return 0

def build_settings(args):
    return Settings(protocol=args.protocol, timeout_s=args.timeout)

def build_argparser():
    ap = argparse.ArgumentParser(description="Connectivity expectation runner")
    ap.add_argument("mode", nargs="?", help="'fake' to use scripted workloads instead of docker")
    ap.add_argument("--from", dest="source", help="Container to probe from")
    ap.add_argument("--from-ip", dest="source_ip", help="IP of the source container (for SNAT-free default)")
    ap.add_argument("--to", dest="target", help="Target IP")
    ap.add_argument("--port", type=int, help="Target port")
    ap.add_argument("--protocol", default="tcp", choices=list(get_args(ProtocolName)),
                    help="Probe protocol")
    ap.add_argument("--expect", default="some", choices=["some", "none"], help="Expected connectivity")
    ap.add_argument("--timeout", type=float, default=10.0, help="Seconds to keep retrying")
    ap.add_argument("-v", "--verbose", action="store_true", help="DEBUG logging")
    return ap

def main(argv=None):
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.mode != "fake" and not (args.source and args.target and args.port):
        ap.error("Provide --from, --to and --port (or 'fake')")
    try:
        if args.mode == "fake":
            return run_with_fake(args)
        return run_with_docker(args)
    except ConfigurationError as e:
        ap.error(str(e))

if __name__ == "__main__":
    sys.exit(main())
