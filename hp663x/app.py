import logging
import sys

from pyvisa.errors import Error as VisaError

from .cli import confirm_overwrite, parse_args
from .config import PROGRAM
from .errors import FileError, LinkError, SupplyError
from .runner import Runner
from .visa_utils import visa_list_resources

logger = logging.getLogger(PROGRAM)


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", stream=sys.stderr)
    try:
        cfg, args = parse_args(argv)
    except SupplyError as e:
        logger.error("%s", e)
        return e.exit_code
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if cfg is None:
        try:
            res = visa_list_resources()
        except (VisaError, OSError, ValueError) as e:
            logger.error("VISA scan error: %s", e)
            return LinkError.exit_code
        gpib = [r for r in res if "GPIB" in r]
        for r in gpib + [r for r in res if "GPIB" not in r]:
            print(r)
        return 0

    if not cfg.configure_only:
        try:
            if not confirm_overwrite(cfg.output, args.force):
                return 1
        except (EOFError, OSError) as e:
            err = FileError(f"Could not confirm overwrite of '{cfg.output}': {e}")
            logger.error("%s", err)
            return err.exit_code

    return Runner(cfg).run()


if __name__ == "__main__":
    sys.exit(main())
