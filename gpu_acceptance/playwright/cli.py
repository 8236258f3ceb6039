import argparse
import asyncio
import sys

import upath
from cloud_detect import provider
from rich import print
from rich.markup import escape

from .. import __version__
from ..flags import DEFAULT_CHANNEL
from ..utils import flatten_violations, summarize_runs
from .run import start


# Parse command line arguments and run main function
def main():
    parser = argparse.ArgumentParser(
        description='Verify that Chromium on this host renders with GPU acceleration'
    )
    parser.add_argument('--runs', type=int, default=1, help='Number of runs to perform')
    parser.add_argument(
        '--timeout', type=int, default=10000, help='Page promise timeout in milliseconds'
    )
    parser.add_argument(
        '--webgpu-timeout',
        type=int,
        default=5000,
        help='Timeout for WebGPU adapter and device requests in milliseconds',
    )
    parser.add_argument(
        '--detect-provider', action='store_true', help='Detect provider', default=False
    )
    parser.add_argument('--non-headless', action='store_true', help='Run in non-headless mode')
    parser.add_argument(
        '--channel',
        type=str,
        default=DEFAULT_CHANNEL,
        help='Playwright browser channel, e.g. chromium or chrome',
    )
    parser.add_argument(
        '--hardware',
        action='store_true',
        help='Require a hardware renderer and the hardware capability floors',
    )
    parser.add_argument('--s3-bucket', type=str, default=None, help='S3 bucket name')
    parser.add_argument(
        '--data-dir', type=str, default='data', help='Local directory for results and screenshots'
    )
    parser.add_argument(
        '--skip-diagnostics', action='store_true', help='Do not read chrome://gpu'
    )
    parser.add_argument(
        '--rendering-url',
        type=str,
        default=None,
        help='External WebGPU page whose canvas must be rendering',
    )
    parser.add_argument(
        '--extra-flag',
        action='append',
        default=[],
        dest='extra_flags',
        help='Additional Chromium flag, may be repeated',
    )

    args = parser.parse_args()

    # Validate arguments
    if args.runs < 1:
        raise ValueError(f'Invalid runs: {args.runs}. Must be an integer greater than 0.')

    for name in ['timeout', 'webgpu_timeout']:
        if getattr(args, name) <= 0:
            raise ValueError(
                f'Invalid {name}: {getattr(args, name)}. Must be a positive number of milliseconds.'
            )

    if bad := [flag for flag in args.extra_flags if not flag.startswith('--')]:
        raise ValueError(f'Invalid Chromium flags: {bad}. Flags must start with "--".')

    # Define directory for results and screenshots
    version = '.'.join(__version__.split('.')[0:2])

    data_dir = (
        upath.UPath(args.s3_bucket) / 'gpu-acceptance' / version
        if args.s3_bucket
        else upath.UPath(args.data_dir) / version
    )
    data_dir.mkdir(exist_ok=True, parents=True)

    # Detect cloud provider
    provider_name = provider() if args.detect_provider else 'unknown'

    records = asyncio.run(
        start(
            runs=args.runs,
            timeout=args.timeout,
            webgpu_timeout=args.webgpu_timeout,
            data_dir=data_dir,
            headless=not args.non_headless,
            channel=args.channel or None,
            provider_name=provider_name,
            extra_flags=args.extra_flags,
            skip_diagnostics=args.skip_diagnostics,
            rendering_url=args.rendering_url,
            hardware=args.hardware,
        )
    )

    print(escape(summarize_runs(records).to_string(index=False)))
    failures = flatten_violations(records)
    if not failures.empty:
        print(escape(failures.to_string(index=False)))

    if not all(record['passed'] for record in records):
        sys.exit(1)


if __name__ == '__main__':
    main()
