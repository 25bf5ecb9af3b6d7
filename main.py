"""
Geopolitical Conflict Simulation
Main entry point: runs the AI world tick by tick with a live dashboard, then
writes the tick history, an HTML report and the coalition network figure.
"""

import argparse
import json
from pathlib import Path
import numpy as np

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.layout import Layout
from rich.panel import Panel

from world import World
from config import SimulationConfig
from logger import setup_logger
from reporting import ReportGenerator
from network_viz import NetworkVisualizer

logger = None
console = Console()

SEVERITY_STYLES = {1: "white", 2: "yellow", 3: "bold red"}


class NumpyEncoder(json.JSONEncoder):
    """Custom encoder for NumPy data types."""
    def default(self, obj):
        if isinstance(obj, (np.integer, np.floating, np.bool_)):
            return obj.item()
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        return super(NumpyEncoder, self).default(obj)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for simulation configuration."""
    parser = argparse.ArgumentParser(
        description="Geopolitical conflict simulation: AI nations posture, ally, fight and capitulate"
    )
    parser.add_argument(
        "--steps", type=int, default=120,
        help="Number of ticks to simulate (default: 120)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for reproducibility"
    )
    parser.add_argument(
        "--ticks-per-month", type=int, default=1,
        help="Ticks between runs of the monthly systems: UN, crises, soft power, summits (default: 1)"
    )
    parser.add_argument(
        "--output-dir", type=str, default="output",
        help="Directory for output files (default: output)"
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING",
        help="Logging verbosity level (default: WARNING)"
    )
    parser.add_argument(
        "--no-viz", action="store_true",
        help="Skip the coalition network figure"
    )
    return parser.parse_args()


def create_dashboard(step, total_steps, stats, events):
    """Create a rich layout dashboard."""
    layout = Layout()
    layout.split_column(
        Layout(name="header", size=3),
        Layout(name="main", ratio=1),
        Layout(name="footer", size=3)
    )

    layout["header"].update(Panel(f"Conflict Simulation - Tick {step}/{total_steps}", style="bold blue"))

    table = Table(title="World State")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    if stats:
        table.add_row("Living Nations", str(stats.get("living_nations", 0)))
        table.add_row("Annexed", str(stats.get("annexed_nations", 0)))
        table.add_row("Active Wars", str(stats.get("active_wars", 0)))
        table.add_row("Coalitions", str(stats.get("coalitions", 0)))
        table.add_row("Coalition Wars", str(stats.get("coalition_wars", 0)))
        table.add_row("Active Crises", str(stats.get("active_crises", 0)))
        table.add_row("Casualties", f"{stats.get('total_casualties', 0):,}")
        table.add_row("Avg Relations", f"{stats.get('avg_relations', 0):.1f}")

    if events:
        event_text = "\n".join(
            f"[{SEVERITY_STYLES.get(e['severity'], 'white')}]• {e['title']}[/]" for e in events[-10:]
        )
    else:
        event_text = "No events yet."

    layout["main"].split_row(
        Layout(Panel(table, title="Stats"), ratio=1),
        Layout(Panel(event_text, title="Recent Events"), ratio=2)
    )

    layout["footer"].update(Panel("Running simulation...", style="italic"))

    return layout


def main():
    """Main simulation loop with live dashboard and final reporting."""
    global logger
    args = parse_args()

    logger = setup_logger(level_name=args.log_level)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    config = SimulationConfig(
        num_steps=args.steps,
        output_dir=output_dir,
        seed=args.seed,
        ticks_per_month=args.ticks_per_month,
    )

    console.print("[bold green]Initializing world...[/bold green]")
    world = World(config)

    history = []
    recent_events = []

    with Live(console=console, refresh_per_second=4) as live:
        for step in range(args.steps):
            step_data = world.simulate_step(step)
            history.append(step_data)

            if step_data.get("events"):
                recent_events.extend(step_data["events"])
                recent_events = recent_events[-20:]

            live.update(create_dashboard(step + 1, args.steps, step_data.get("global_stats", {}), recent_events))

    history_file = output_dir / "simulation.json"
    with open(history_file, 'w') as f:
        json.dump(history, f, indent=2, cls=NumpyEncoder)
    console.print(f"[bold green]Simulation history saved to {history_file}[/bold green]")

    if not args.no_viz:
        network_path = output_dir / "coalition_network.png"
        NetworkVisualizer(config).create_conflict_network(world, network_path)
        console.print(f"[bold green]Coalition network saved to {network_path}[/bold green]")

    reporter = ReportGenerator(config)
    report_path = reporter.generate_report(history, output_dir)

    console.print(f"[bold green]Report generated at: {report_path}[/bold green]")
    console.print("[bold blue]Simulation complete![/bold blue]")


if __name__ == "__main__":
    main()
