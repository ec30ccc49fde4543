"""Rich-based terminal status view for PureRate."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from rich.console import Console, ConsoleOptions, RenderResult
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from purerate.engine import MonitorState, RateChangeEvent
from purerate.utils import format_rate, rate_tier


class _RefreshableLayout:
    """A renderable that rebuilds on each render cycle."""

    def __init__(self, ui: PureRateUI) -> None:
        self._ui = ui

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        """Rebuild and yield the layout on each render."""
        yield self._ui._build_layout()  # noqa: SLF001


# Duration in seconds to highlight a pressed shortcut
SHORTCUT_HIGHLIGHT_DURATION = 0.15

# Number of history rows shown
HISTORY_ROWS = 8

# Controls panel width; fits the labels and "System Default" on one line
CONTROLS_WIDTH = 34


@dataclass
class UIState:
    """Holds state for the UI display."""

    monitor: MonitorState = field(default_factory=MonitorState)
    enabled: bool = True
    notifications_enabled: bool = False

    # Shortcut highlight
    highlighted_shortcut: str | None = None
    highlight_time: float = 0.0


def _rate_style(rate: float) -> str:
    """Color a rate by quality tier."""
    if rate <= 48000:
        return "bold blue"
    if rate <= 96000:
        return "bold magenta"
    return "bold red"


class PureRateUI:
    """Rich-based terminal UI mirroring the monitor state."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the UI.

        Args:
            console: Console to render to. Defaults to the terminal.
        """
        self._console = console if console is not None else Console()
        self._state = UIState()
        self._live: Live | None = None

    def _is_highlighted(self, shortcut: str) -> bool:
        """Check if a shortcut should be highlighted."""
        if self._state.highlighted_shortcut != shortcut:
            return False
        elapsed = time.monotonic() - self._state.highlight_time
        return elapsed < SHORTCUT_HIGHLIGHT_DURATION

    def _shortcut_style(self, shortcut: str) -> str:
        """Get the style for a shortcut key."""
        return "bold yellow reverse" if self._is_highlighted(shortcut) else "bold cyan"

    def highlight_shortcut(self, shortcut: str) -> None:
        """Highlight a shortcut temporarily."""
        self._state.highlighted_shortcut = shortcut
        self._state.highlight_time = time.monotonic()
        self.refresh()

    def _target_device_label(self) -> str:
        monitor = self._state.monitor
        if monitor.target_device_id is None:
            return "System Default"
        for device in monitor.available_devices:
            if device.device_id == monitor.target_device_id:
                return device.name
        return f"Device {monitor.target_device_id}"

    def _build_rate_panel(self, *, expand: bool = False) -> Panel:
        """Build the current sample rate panel."""
        monitor = self._state.monitor
        content = Table.grid(padding=(0, 1))
        content.add_column(style="dim", width=10)
        content.add_column()

        rate = monitor.current_sample_rate
        if rate is None:
            content.add_row("Rate:", Text("--", style="dim"))
        else:
            rate_text = Text(format_rate(rate), style=_rate_style(rate))
            rate_text.append(f"  {rate_tier(rate)}", style="dim")
            content.add_row("Rate:", rate_text)

        content.add_row("Device:", Text(monitor.active_device_name or "Unknown", style="cyan"))
        depth = f"{monitor.bit_depth}-bit" if monitor.bit_depth else "--"
        content.add_row("Depth:", Text(depth, style="white"))
        supported = ", ".join(format_rate(r) for r in monitor.supported_rates) or "--"
        content.add_row("Supports:", Text(supported, style="dim", overflow="ellipsis", no_wrap=True))

        return Panel(content, title="Sample Rate", border_style="blue", expand=expand)

    def _build_controls_panel(self, *, expand: bool = False) -> Panel:
        """Build the controls panel."""
        info = Table.grid(padding=(0, 2))
        info.add_column()
        info.add_column()

        def on_off(value: bool) -> Text:
            return Text("ON", style="green bold") if value else Text("OFF", style="red")

        info.add_row("Auto:", on_off(self._state.enabled))
        info.add_row("Notify:", on_off(self._state.notifications_enabled))
        info.add_row("Target:", Text(self._target_device_label(), style="cyan"))

        content = Table.grid()
        content.add_column()
        content.add_row(info)
        content.add_row("")

        shortcuts = Text()
        shortcuts.append("e", style=self._shortcut_style("enable"))
        shortcuts.append(" auto  ", style="dim")
        shortcuts.append("n", style=self._shortcut_style("notify"))
        shortcuts.append(" notify  ", style="dim")
        shortcuts.append("d", style=self._shortcut_style("device"))
        shortcuts.append(" device  ", style="dim")
        shortcuts.append("r", style=self._shortcut_style("refresh"))
        shortcuts.append(" refresh", style="dim")
        content.add_row(shortcuts)

        return Panel(content, title="Controls", border_style="magenta", expand=expand)

    def _history_row(self, event: RateChangeEvent) -> Text:
        line = Text()
        line.append("● ", style="green" if event.success else "red")
        if event.previous_rate is not None:
            line.append(f"{event.previous_rate / 1000.0:.1f}", style="dim")
            line.append(" → ", style="dim")
        line.append(f"{event.target_rate / 1000.0:.1f} kHz", style="white")
        if event.device_name:
            line.append(f"  {event.device_name}", style="dim")
        return line

    def _build_history_panel(self, *, expand: bool = False) -> Panel:
        """Build the recent changes panel."""
        monitor = self._state.monitor
        content = Table.grid(expand=True)
        content.add_column()
        content.add_column(justify="right", no_wrap=True)

        if not monitor.history:
            content.add_row(Text("No changes yet", style="dim"), "")
        for event in monitor.history[:HISTORY_ROWS]:
            content.add_row(
                self._history_row(event),
                Text(event.timestamp.strftime("%H:%M:%S"), style="dim"),
            )

        title = f"Recent Changes ({monitor.total_switches} total)"
        return Panel(content, title=title, border_style="green", expand=expand)

    def _build_layout(self) -> Table:
        """Build the complete UI layout."""
        # Get terminal width and leave 1 char margin to prevent wrapping
        width = self._console.width - 1

        layout = Table.grid(expand=False)
        layout.add_column(width=width)

        top_row = Table.grid(expand=True)
        top_row.add_column(ratio=1)
        top_row.add_column(width=CONTROLS_WIDTH)
        top_row.add_row(
            self._build_rate_panel(expand=True),
            self._build_controls_panel(expand=True),
        )
        layout.add_row(top_row)
        layout.add_row(self._build_history_panel(expand=True))
        layout.add_row(self._build_status_line())
        return layout

    def _build_status_line(self) -> Table:
        """Build the status line at the bottom."""
        monitor = self._state.monitor
        left = Text()
        left.append("  ")  # Align with panel content
        live = monitor.monitoring_active and self._state.enabled
        left.append("● ", style="green" if live else "dim")
        left.append("LIVE" if live else "OFF", style="green bold" if live else "dim")
        if monitor.last_error:
            left.append(f"  {monitor.last_error}", style="yellow")

        right = Text()
        right.append("q", style=self._shortcut_style("quit"))
        right.append(" quit", style="dim")

        line = Table.grid(expand=True)
        line.add_column(ratio=1)
        line.add_column(justify="right")
        line.add_column(width=2)  # Right padding to align with panel interior
        line.add_row(left, right, "")
        return line

    def refresh(self) -> None:
        """Request a UI refresh."""
        if self._live is not None:
            self._live.refresh()

    def set_monitor_state(self, state: MonitorState) -> None:
        """Show a new engine snapshot."""
        self._state.monitor = state
        self.refresh()

    def set_settings(self, *, enabled: bool, notifications_enabled: bool) -> None:
        """Update the settings toggles."""
        self._state.enabled = enabled
        self._state.notifications_enabled = notifications_enabled
        self.refresh()

    def start(self) -> None:
        """Start the live display."""
        self._console.clear()
        self._live = Live(
            _RefreshableLayout(self),
            console=self._console,
            refresh_per_second=4,
            screen=True,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display."""
        if self._live is not None:
            self._live.stop()
            self._live = None
