import argparse, sys, logging

from retain_cycles.events import PrintSink
from retain_cycles.scenario import Variant, run_scenario


def get_parser():
    parser = argparse.ArgumentParser(prog='retain-cycles', add_help=True, description='Run the Person/Apartment reference counting scenario and print the deinitialization notifications')
    parser.add_argument("--variant", choices=[v.value for v in Variant], default=Variant.WEAK_TENANT.value, help='weak: Apartment.tenant is a weak reference (default); strong: both edges are strong and form a retain cycle')
    parser.add_argument("--json", action='store_true', default=False, help='Print each notification as a JSON object instead of plain text')
    parser.add_argument("--stats", action='store_true', default=False, help='Print the reference counts of leaked cells')
    parser.add_argument('-v', '--verbose', action='store_true', default=False, help='Log every reference count transition')
    return parser


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    variant = Variant(args.variant)
    if args.json:
        result = run_scenario(variant)
        for event in result.events:
            print(event.to_json())
    else:
        result = run_scenario(variant, sink=PrintSink())

    # stdout carries only JSON lines in --json mode
    report = sys.stderr if args.json else sys.stdout
    if not result.is_leak_free:
        print(f"leaked {len(result.leaked)} object(s): {', '.join(result.leaked_labels)}", file=report)
        if result.cycle:
            print(f"retain cycle: {' -> '.join(result.cycle + result.cycle[:1])}", file=report)
        if args.stats:
            for stats in result.snapshot:
                print(f"  {stats.label}: strong_count={stats.strong_count} "
                      f"weak_count={stats.weak_count} bytes={stats.serialize().hex()}", file=report)
    return 0


if __name__ == '__main__':
    sys.exit(main())
