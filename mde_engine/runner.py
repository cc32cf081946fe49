"""Command-line entry point: describe equations, or explore them in a shell."""

import logging
from typing import List, Optional, Sequence

from .config import EngineConfig
from .geometry import Bounds
from .solver import Solver

logger = logging.getLogger(__name__)


class EngineRunner:
    """Owns one Solver and prints what it finds."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.from_env()
        for warning in self.config.validate():
            logger.warning(f"Config: {warning}")
        self.solver = Solver(self.config)

    def add(self, equations: Sequence[str]) -> int:
        """Add equations, returning how many were accepted."""
        before = self.solver.size()
        for text in equations:
            self.solver.add(text)
        added = self.solver.size() - before
        logger.info(f"Added {added} of {len(equations)} equation(s)")
        return added

    def solve(self, bounds: Optional[Bounds] = None):
        if bounds is None:
            self.solver.solve()
        else:
            self.solver.solve(bounds)

    def describe(self) -> List[str]:
        """XML feature tree of every solution, in order."""
        out = []
        for solution in self.solver:
            features = solution.get_features()
            name = solution.analyzed_item.name
            if features is None:
                out.append(f"<!-- {name}: no description -->")
            else:
                out.append(f"<!-- {name} -->{features.to_xml()}")
        return out

    def dump_points(self) -> List[str]:
        out = []
        for solution in self.solver:
            out.append(f"# {solution.analyzed_item.name}")
            for i, trail in enumerate(solution.get_graph_trails()):
                out.append(f"# trail {i}")
                out.extend(f"{p.x}\t{p.y}" for p in trail.points)
        return out

    def interactive_shell(self):
        """Run an interactive shell for adding and describing equations."""
        import cmd

        runner = self

        class EngineShell(cmd.Cmd):
            intro = "Equation description shell. Type 'help' for commands."
            prompt = "mde> "

            def do_add(self, arg):
                """Add an equation: add y = x^2 - 4"""
                if not arg.strip():
                    print("Usage: add <equation>")
                elif not runner.add([arg.strip()]):
                    print(f"Could not use '{arg.strip()}'")

            def do_solve(self, arg):
                """Solve everything added so far: solve [left right top bottom]"""
                parts = arg.split()
                if parts and len(parts) != 4:
                    print("Usage: solve [left right top bottom]")
                    return
                try:
                    bounds = Bounds(*map(float, parts)) if parts else None
                except ValueError:
                    print(f"Bad bounds: {arg}")
                    return
                runner.solve(bounds)
                print(f"Solved {runner.solver.size()} item(s)")

            def do_features(self, arg):
                """Print the feature tree of every solved item"""
                for text in runner.describe():
                    print(text)

            def do_bounds(self, arg):
                """Show the current bounds"""
                b = runner.solver.get_bounds()
                print(f"left={b.left} right={b.right} top={b.top} bottom={b.bottom}")

            def do_list(self, arg):
                """List the equations added so far"""
                for i, solution in enumerate(runner.solver):
                    print(f"  {i}: {solution.analyzed_item.name}")

            def do_clear(self, arg):
                """Remove every equation"""
                runner.solver.remove_all()

            def do_quit(self, arg):
                """Exit the shell"""
                return True

            do_exit = do_quit

        EngineShell().cmdloop()


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Describe the graphs of equations")
    parser.add_argument("equations", nargs="*", help="Equations such as 'y = x^2 - 4'")
    parser.add_argument("--bounds", type=float, nargs=4, metavar=("L", "R", "T", "B"),
                        help="Viewing rectangle: left right top bottom")
    parser.add_argument("--points", action="store_true", help="Also print the sampled trails")
    parser.add_argument("--shell", action="store_true", help="Start interactive shell")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    runner = EngineRunner()
    if args.equations:
        runner.add(args.equations)
        runner.solve(Bounds(*args.bounds) if args.bounds else None)
        for text in runner.describe():
            print(text)
        if args.points:
            for line in runner.dump_points():
                print(line)
    if args.shell:
        runner.interactive_shell()
    elif not args.equations:
        parser.print_help()
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
