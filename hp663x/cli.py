import argparse
import os
import sys

from .config import (DEFAULT_ADDRESS, DEFAULT_FLUSH, DEFAULT_INTERVAL, DEFAULT_MODEL,
                     PROGRAM, SUPPLY_MODELS, VERSION, RampPlan, RunConfig,
                     SupplyConfiguration)
from .errors import ConfigurationError


class ArgumentParser(argparse.ArgumentParser):
    """argparse that reports bad usage as ConfigurationError (exit code 1)."""

    def error(self, message):
        raise ConfigurationError(f"{message} ('{self.prog} -h' for help)")


def build_parser() -> ArgumentParser:
    p = ArgumentParser(
        prog=PROGRAM,
        description=f"Control of the HP663xA power supplies over GPIB. {VERSION}.",
    )
    p.add_argument("-m", dest="model", default=DEFAULT_MODEL, choices=sorted(SUPPLY_MODELS),
                   help=f"supply model (default {DEFAULT_MODEL})")
    p.add_argument("-a", dest="address", type=int, default=DEFAULT_ADDRESS,
                   help=f"use instrument at GPIB address 'id' (default is {DEFAULT_ADDRESS})")
    p.add_argument("-b", dest="board", type=int, default=0, help="GPIB board index (default 0)")
    p.add_argument("-u", dest="volt", type=float, default=0.0,
                   help="set actual voltage to 'V' Volt (ramp start when ramping)")
    p.add_argument("-U", dest="upper", type=float, default=0.0, help="set upper ramp voltage to 'V' Volt")
    p.add_argument("-M", dest="limiter", type=float, default=None, help="set voltage limiter to 'V' Volt")
    p.add_argument("-i", dest="amp", type=float, default=None, help="set current limiter to 'A' Ampere")
    p.add_argument("-I", dest="ocp", action="store_true", help="enable overcurrent trip (default off)")
    p.add_argument("-r", dest="ramp", type=int, default=0,
                   help="ramp voltage by increment 'dV' mV (default 0 mV)")
    p.add_argument("-R", dest="dual", action="store_true", help="run ramp up and down (default is one-way)")
    p.add_argument("-t", dest="interval", type=int, default=DEFAULT_INTERVAL,
                   help="delay between measurements or steps in 0.1 s (default is 10; "
                        "'0' quits after setting parameters and implies -k and -n)")
    p.add_argument("-k", dest="keep", action="store_true",
                   help="keep settings before and after run (default: switches off)")
    p.add_argument("-K", dest="no_wait", action="store_true",
                   help="do not ask for keypress before exit (default: wait for key)")
    p.add_argument("-w", dest="flush", type=int, default=DEFAULT_FLUSH,
                   help=f"force write to disk every x samples (default {DEFAULT_FLUSH})")
    p.add_argument("-f", dest="force", action="store_true", help="force overwriting of existing output file")
    p.add_argument("-c", dest="comment", default="", help="comment text")
    graph = p.add_mutually_exclusive_group()
    graph.add_argument("-n", dest="no_graph", action="store_true", help="no graphics")
    graph.add_argument("-g", dest="gnuplot", default="gnuplot",
                       help="specify path/to/gnuplot (if not in your current PATH)")
    p.add_argument("-p", dest="plotter", default="gnuplot", choices=["gnuplot", "matplotlib"],
                   help="live plot back-end (default gnuplot)")
    p.add_argument("-l", dest="list_resources", action="store_true", help="list VISA resources and exit")
    p.add_argument("-v", dest="verbose", action="store_true", help="log every bus command")
    p.add_argument("outfile", nargs="?", help="data file")
    return p


def clean_comment(text: str) -> str:
    """Keep only the first line of the comment."""
    return text.splitlines()[0] if text else ""


def parse_args(argv=None):
    """Parse and validate; returns (RunConfig, namespace)."""
    args = build_parser().parse_args(argv)
    if args.list_resources:
        return None, args

    ramp = None
    if args.ramp:
        ramp = RampPlan(start=args.volt, end=args.upper, step_mv=args.ramp, dual=args.dual)
    cfg = RunConfig(
        supply=SupplyConfiguration(volt=args.volt, amp=args.amp, limiter_volt=args.limiter, ocp=args.ocp),
        ramp=ramp,
        model=args.model,
        address=args.address,
        board=args.board,
        interval=args.interval,
        flush_every=args.flush,
        comment=clean_comment(args.comment),
        keep=args.keep,
        wait_key=not args.no_wait,
        graph=not args.no_graph,
        plotter=args.plotter,
        gnuplot=args.gnuplot,
        output=args.outfile,
    )
    return cfg.validate(), args


def confirm_overwrite(path: str, force: bool, ask=None) -> bool:
    """True if ``path`` may be (over)written."""
    ask = ask or input
    if force or not os.path.exists(path):
        return True
    sys.stderr.write("\a")
    answer = ask(f"\nFile '{path}' exists - Overwrite? [Y/*] ")
    return answer[:1] in ("Y", "y")
