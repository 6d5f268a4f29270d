import argparse
import asyncio
import os
import sys
from typing import Any, Dict, List, Optional

from colorama import Fore, Style

from . import __version__
from .environment import DnaEnvironment, load_configuration
from .logger import Logger, LogLevel


def print_banner() -> None:
    def cool(l: str, r: str) -> None:
        print(f"{Fore.GREEN}{l}{Fore.CYAN}{r}{Style.RESET_ALL}")

    cool("     _             ", "                _     ")
    cool("  __| |_ __   __ _ ", "__      _____| |__  ")
    cool(" / _` | '_ \\ / _` |", "\\ \\ /\\ / / _ \\ '_ \\ ")
    cool("| (_| | | | | (_| |", " \\ V  V /  __/ |_) |")
    cool(" \\__,_|_| |_|\\__,_|", "  \\_/\\_/ \\___|_.__/ ")
    print(f"  {Style.DIM}{Fore.WHITE}version {__version__}{Style.RESET_ALL}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dnaweb",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=f"{Fore.WHITE}{Style.BRIGHT}Generate web and code files from templates using:{Style.RESET_ALL}\n\n"
                    f"  - includes with {Fore.GREEN}<!--@ include header @-->{Style.RESET_ALL}\n"
                    f"  - outputs and profiles with {Fore.GREEN}<!--@ output page:server @-->{Style.RESET_ALL}\n"
                    f"  - variables from {Fore.GREEN}<!--$ <Data>...</Data> $-->{Style.RESET_ALL} "
                    f"used as {Fore.GREEN}$$Name$${Style.RESET_ALL}\n\n"
                    f"  {Fore.YELLOW}{Style.BRIGHT}Settings are read from dna.config files.{Style.RESET_ALL}",
    )
    parser.add_argument("-m", "--monitor", dest="monitor", help="folder to watch (default: current folder)")
    parser.add_argument("-o", "--output", dest="output", help="folder for generated files")
    parser.add_argument("-c", "--config", dest="config", help="settings file to start from")
    parser.add_argument("-a", "--generate-all", action="store_true", help="generate every file on start")
    parser.add_argument("--close", action="store_true", help="generate every file, then exit")
    parser.add_argument("-l", "--log-level", dest="log_level", choices=[level.name.lower() for level in LogLevel],
                        help="how much to print")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Command line flags in dna.config form"""
    overrides: Dict[str, Any] = {}
    if args.monitor:
        overrides["monitor"] = args.monitor
    if args.output:
        overrides["outputPath"] = args.output
    if args.generate_all:
        overrides["generateOnStart"] = "all"
    if args.close:
        overrides["processAndClose"] = True
    if args.log_level:
        overrides["logLevel"] = args.log_level
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    print_banner()

    logger = Logger()
    if args.log_level:
        logger.level = LogLevel.parse(args.log_level)

    configuration = load_configuration(os.getcwd(), args.config, overrides_from_args(args), logger)

    if not os.path.isdir(configuration.monitor_path):
        logger.error(f"Monitor folder {configuration.monitor_path} does not exist")
        return 1

    environment = DnaEnvironment.create(configuration, logger)

    try:
        results = asyncio.run(environment.run())
    except KeyboardInterrupt:
        print(f"\n{Fore.GREEN}Stopping file watcher...{Style.RESET_ALL}")
        print(f"{Fore.GREEN}Done!{Style.RESET_ALL}")
        return 0

    if any(not result.success for result in results or []):
        return 1
    print(f"{Fore.GREEN}{Style.BRIGHT}Success!{Style.RESET_ALL}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
