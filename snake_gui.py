# Tkinter player window: paints session frames and forwards keys/buttons to the session.
from __future__ import annotations

import logging
import tkinter as tk
from tkinter import messagebox

# Support both package imports and running this file directly.
try:
    from .game_logic import DOWN, LEFT, RIGHT, UP, BoardTooSmallError, Grid, SnakeConfig
    from .highscores import JsonHighScoreStore, MemoryHighScoreStore
    from .scheduler import TkScheduler
    from .session import Frame, GameSession, SessionState
    from .utils import configure_logging, load_config
except ImportError:
    from game_logic import DOWN, LEFT, RIGHT, UP, BoardTooSmallError, Grid, SnakeConfig
    from highscores import JsonHighScoreStore, MemoryHighScoreStore
    from scheduler import TkScheduler
    from session import Frame, GameSession, SessionState
    from utils import configure_logging, load_config


logger = logging.getLogger(__name__)

GAME_OVER_DELAY_MS = 300

KEY_DIRECTIONS = {
    "Up": UP,
    "Down": DOWN,
    "Left": LEFT,
    "Right": RIGHT,
    "w": UP,
    "s": DOWN,
    "a": LEFT,
    "d": RIGHT,
    "W": UP,
    "S": DOWN,
    "A": LEFT,
    "D": RIGHT,
}

ARROW_BUTTONS = (
    ("\u25b2", UP, 0, 1),
    ("\u25c0", LEFT, 1, 0),
    ("\u25b6", RIGHT, 1, 2),
    ("\u25bc", DOWN, 2, 1),
)


class SnakeApp:
    """Tkinter presentation layer for GameSession. Never mutates game state directly."""
    UI_SCALE = 1.2
    BG = "#101418"
    BOARD_BG = "#f0f4ff"
    SIDEBAR_BG = "#0f1720"
    GRID_COLOR = "#e8eeff"
    SNAKE_HEAD = "#5568d3"
    SNAKE_BODY = "#7c8ef5"
    SNAKE_OUTLINE = "#5568d3"
    FOOD_COLOR = "#ff4757"
    FOOD_SHINE = "#ffb3ba"
    TEXT_PRIMARY = "#e6eef7"
    TEXT_MUTED = "#95a4b8"
    ACCENT = "#42c4ff"
    BORDER_COLOR = "#7f8b99"

    def __init__(self, root: tk.Tk, config: SnakeConfig) -> None:
        self.root = root
        self.root.title("Snake")
        self.root.configure(bg=self.BG)
        self.root.tk.call("tk", "scaling", self.UI_SCALE)
        self.root.minsize(self._s(760), self._s(560))
        self.root.geometry(f"{self._s(1040)}x{self._s(720)}")

        self.config = config
        store = (
            JsonHighScoreStore(config.high_score_path)
            if config.high_score_path
            else MemoryHighScoreStore()
        )
        self.session = GameSession(
            config,
            Grid.from_pixels(config.board_pixels, config.tile_size),
            TkScheduler(self.root),
            high_scores=store,
        )
        self.game_over_id: str | None = None  # Tkinter timer id for the delayed game-over overlay
        self.last_frame: Frame | None = None
        self.summary_shown = False
        self.pending_viewport: tuple[int, int] | None = None  # resize seen after game over

        self._build_layout()
        self._bind_keys()
        self._apply_canvas_size()
        self.session.subscribe(self.on_frame)
        self.on_frame(self.session.frame())

    def _s(self, value: int) -> int:
        """Scale pixel/font values for better readability."""
        return int(round(value * self.UI_SCALE))

    def _build_layout(self) -> None:
        """Create game canvas + right sidebar panels."""
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)

        container = tk.Frame(self.root, bg=self.BG)
        container.grid(row=0, column=0, sticky="nsew", padx=self._s(16), pady=self._s(16))
        container.columnconfigure(0, weight=1)
        container.columnconfigure(1, weight=0)
        container.rowconfigure(0, weight=1)

        # The board area tracks the window; the canvas inside it is sized from the grid.
        self.board_area = tk.Frame(container, bg=self.BG)
        self.board_area.grid(row=0, column=0, sticky="nsew", padx=(0, self._s(16)))
        self.board_area.pack_propagate(False)
        self.board_area.bind("<Configure>", self._on_board_resize)

        self.canvas = tk.Canvas(
            self.board_area,
            bg=self.BOARD_BG,
            highlightthickness=0,
            bd=0,
        )
        self.canvas.pack(expand=True)

        self.sidebar = tk.Frame(container, bg=self.SIDEBAR_BG, width=self._s(300))
        self.sidebar.grid(row=0, column=1, sticky="ns")
        self.sidebar.grid_propagate(False)

        title = tk.Label(
            self.sidebar,
            text="Snake",
            fg=self.TEXT_PRIMARY,
            bg=self.SIDEBAR_BG,
            font=("Helvetica", self._s(16), "bold"),
        )
        title.pack(anchor="w", padx=self._s(16), pady=(self._s(16), self._s(6)))

        subtitle = tk.Label(
            self.sidebar,
            text="Eat, grow, and speed up every 50 points",
            fg=self.TEXT_MUTED,
            bg=self.SIDEBAR_BG,
            font=("Helvetica", self._s(10)),
        )
        subtitle.pack(anchor="w", padx=self._s(16), pady=(0, self._s(14)))

        self._build_status()
        self._build_buttons()

    def _build_status(self) -> None:
        """Sidebar section with live score/level/time labels."""
        frame = tk.LabelFrame(
            self.sidebar,
            text="Status",
            fg=self.TEXT_PRIMARY,
            bg=self.SIDEBAR_BG,
            bd=1,
            font=("Helvetica", self._s(10), "bold"),
            labelanchor="n",
        )
        frame.pack(fill="x", padx=self._s(16), pady=(0, self._s(14)))

        self.score_var = tk.StringVar(value="Score: 0")
        self.high_score_var = tk.StringVar(value="High Score: 0")
        self.level_var = tk.StringVar(value="Level: 1")
        self.time_var = tk.StringVar(value="Time: 00:00")
        self.state_var = tk.StringVar(value="State: Ready")

        for var in (self.score_var, self.high_score_var, self.level_var, self.time_var, self.state_var):
            tk.Label(
                frame,
                textvariable=var,
                fg=self.TEXT_PRIMARY,
                bg=self.SIDEBAR_BG,
                font=("Helvetica", self._s(11)),
                anchor="w",
            ).pack(fill="x", padx=self._s(10), pady=self._s(4))

    def _build_buttons(self) -> None:
        """Action buttons for start/pause/restart."""
        frame = tk.Frame(self.sidebar, bg=self.SIDEBAR_BG)
        frame.pack(fill="x", padx=self._s(16), pady=(0, self._s(10)))

        self.start_btn = self._button(frame, "Start", self.start_game)
        self.start_btn.pack(fill="x", pady=self._s(4))

        self.pause_btn = self._button(frame, "Pause", self.toggle_pause)
        self.pause_btn.pack(fill="x", pady=self._s(4))

        self.restart_btn = self._button(frame, "Restart", self.restart_game)
        self.restart_btn.pack(fill="x", pady=self._s(4))

        # On-screen direction pad.
        pad = tk.Frame(self.sidebar, bg=self.SIDEBAR_BG)
        pad.pack(padx=self._s(16), pady=(self._s(4), self._s(10)))
        self.arrow_btns = {}
        for label, direction, row, column in ARROW_BUTTONS:
            btn = self._button(pad, label, lambda d=direction: self.session.request_direction(d))
            btn.grid(row=row, column=column, padx=self._s(2), pady=self._s(2))
            self.arrow_btns[direction] = btn

        footer = tk.Label(
            self.sidebar,
            text="Move: Arrow keys / WASD\nPause: Space",
            fg=self.TEXT_MUTED,
            bg=self.SIDEBAR_BG,
            justify="left",
            font=("Helvetica", self._s(10)),
        )
        footer.pack(anchor="w", padx=self._s(16), pady=(self._s(4), self._s(10)))

    def _button(self, parent: tk.Widget, text: str, command) -> tk.Button:
        return tk.Button(
            parent,
            text=text,
            command=command,
            fg="#09141f",
            bg=self.ACCENT,
            activebackground="#74d8ff",
            activeforeground="#09141f",
            bd=0,
            relief="flat",
            font=("Helvetica", self._s(11), "bold"),
            padx=self._s(12),
            pady=self._s(9),
            cursor="hand2",
        )

    def _bind_keys(self) -> None:
        """Bind movement controls and spacebar pause; "break" stops further handling."""
        for key, direction in KEY_DIRECTIONS.items():
            keysym = f"<{key}>" if len(key) > 1 else key
            self.root.bind(keysym, lambda _e, d=direction: self._on_direction_key(d))
        self.root.bind("<space>", lambda _e: self._on_pause_key())

    def _on_direction_key(self, direction: tuple[int, int]) -> str:
        self.session.request_direction(direction)
        return "break"

    def _on_pause_key(self) -> str:
        self.toggle_pause()
        return "break"

    def _on_board_resize(self, event: tk.Event) -> None:
        """Refit the grid to the window, but never in the middle of a run.

        After a game over the last board stays on screen with its summary; the
        new size is applied when the next run starts.
        """
        if self.session.state in (SessionState.RUNNING, SessionState.PAUSED):
            return
        if self.session.state is SessionState.ENDED:
            self.pending_viewport = (event.width, event.height)
            return
        self._refit_grid(event.width, event.height)

    def _refit_grid(self, width: int, height: int) -> None:
        grid = Grid.from_viewport(width, height, self.config.tile_size, max_pixels=self.config.board_pixels)
        if grid.area < 2 or grid == self.session.grid:
            return
        self.session.set_grid(grid)
        self._apply_canvas_size()

    def _apply_canvas_size(self) -> None:
        """Resize board canvas to match current grid + tile size."""
        side_pixels = self.session.grid.side_pixels
        self.canvas.configure(width=side_pixels, height=side_pixels)

    def _cancel_game_over(self) -> None:
        if self.game_over_id is not None:
            self.root.after_cancel(self.game_over_id)
            self.game_over_id = None

    def start_game(self) -> None:
        """Start a new run; restarts if one is already in progress."""
        self._cancel_game_over()
        self.summary_shown = False
        if self.session.state is SessionState.ENDED and self.pending_viewport is not None:
            width, height = self.pending_viewport
            self.pending_viewport = None
            self._refit_grid(width, height)
        try:
            if self.session.state in (SessionState.IDLE, SessionState.ENDED):
                self.session.start()
            else:
                self.session.restart()
        except BoardTooSmallError as exc:
            logger.warning("Start rejected: %s", exc)
            messagebox.showerror("Board Too Small", str(exc))

    def restart_game(self) -> None:
        if self.session.state is SessionState.IDLE:
            return
        self.start_game()

    def toggle_pause(self) -> None:
        """Pause/resume without losing current board state."""
        self.session.toggle_pause()

    def on_frame(self, frame: Frame) -> None:
        """Session listener: refresh sidebar and repaint the board."""
        previous = self.last_frame
        self.last_frame = frame

        self.score_var.set(f"Score: {frame.score}")
        self.high_score_var.set(f"High Score: {frame.high_score}")
        self.level_var.set(f"Level: {frame.level}")
        self.time_var.set(f"Time: {frame.elapsed_text}")
        self.state_var.set(f"State: {frame.state.value.capitalize()}")
        self.pause_btn.configure(text="Resume" if frame.state is SessionState.PAUSED else "Pause")

        if frame.state is not SessionState.ENDED:
            self.summary_shown = False
        self.draw(frame, show_summary=self.summary_shown)

        just_ended = frame.state is SessionState.ENDED and (
            previous is None or previous.state is not SessionState.ENDED
        )
        if just_ended:
            self._cancel_game_over()
            self.game_over_id = self.root.after(GAME_OVER_DELAY_MS, self._show_game_over)

    def _show_game_over(self) -> None:
        self.game_over_id = None
        if self.last_frame is not None and self.last_frame.state is SessionState.ENDED:
            self.summary_shown = True
            self.draw(self.last_frame, show_summary=True)

    def draw(self, frame: Frame, show_summary: bool = False) -> None:
        """Render grid, food, snake, particles and any overlay for the frame."""
        self.canvas.delete("all")
        size = frame.tile_count
        cell = frame.tile_size
        side = size * cell

        for i in range(size + 1):
            pos = i * cell
            self.canvas.create_line(0, pos, side, pos, fill=self.GRID_COLOR)
            self.canvas.create_line(pos, 0, pos, side, fill=self.GRID_COLOR)

        # Visible wall border around the board.
        self.canvas.create_rectangle(1, 1, side - 1, side - 1, outline=self.BORDER_COLOR, width=2)

        if frame.food is not None:
            fx, fy = frame.food
            self.canvas.create_oval(
                fx * cell + 2, fy * cell + 2, (fx + 1) * cell - 2, (fy + 1) * cell - 2,
                fill=self.FOOD_COLOR, outline="",
            )
            shine = cell / 6
            sx, sy = fx * cell + cell / 3, fy * cell + cell / 3
            self.canvas.create_oval(sx - shine, sy - shine, sx + shine, sy + shine, fill=self.FOOD_SHINE, outline="")

        for idx, (x, y) in enumerate(frame.snake):
            color = self.SNAKE_HEAD if idx == 0 else self.SNAKE_BODY
            self.canvas.create_rectangle(
                x * cell + 1, y * cell + 1, (x + 1) * cell - 1, (y + 1) * cell - 1,
                fill=color, outline=self.SNAKE_OUTLINE, width=2,
            )
        if frame.snake:
            self._draw_eyes(frame.snake[0], frame.direction, cell)

        for p in frame.particles:
            # Tk has no alpha; shrink with remaining life instead.
            radius = max(1.0, 3.0 * p.alpha)
            self.canvas.create_oval(p.x - radius, p.y - radius, p.x + radius, p.y + radius, fill=p.color, outline="")

        if frame.state is SessionState.IDLE:
            self._overlay(side, "Snake", "Press Start, then steer with the arrow keys")
        elif frame.state is SessionState.PAUSED:
            self._overlay(side, "Paused", "Press Space or Resume to continue")
        elif show_summary and frame.summary is not None:
            summary = frame.summary
            self._overlay(
                side,
                "Game Over",
                f"Score {summary.score}   Level {summary.level}   Time {summary.elapsed_text}",
            )

    def _draw_eyes(self, head: tuple[int, int], direction: tuple[int, int], cell: int) -> None:
        """Two eyes on the leading edge of the head; centred while not moving."""
        x, y = head
        near, far = cell // 4, cell - cell // 4 - 3
        if direction == RIGHT:
            eyes = [(far, near), (far, far)]
        elif direction == LEFT:
            eyes = [(near, near), (near, far)]
        elif direction == DOWN:
            eyes = [(near, far), (far, far)]
        elif direction == UP:
            eyes = [(near, near), (far, near)]
        else:
            mid = cell // 2 - 2
            eyes = [(near, mid), (far, mid)]
        for ox, oy in eyes:
            x1, y1 = x * cell + ox, y * cell + oy
            self.canvas.create_rectangle(x1, y1, x1 + 3, y1 + 3, fill="white", outline="")

    def _overlay(self, side: int, title: str, subtitle: str) -> None:
        self.canvas.create_rectangle(0, 0, side, side, fill="#000000", stipple="gray50", outline="")
        self.canvas.create_text(
            side // 2,
            side // 2 - 12,
            text=title,
            fill=self.TEXT_PRIMARY,
            font=("Helvetica", 22, "bold"),
        )
        self.canvas.create_text(
            side // 2,
            side // 2 + 20,
            text=subtitle,
            fill=self.TEXT_PRIMARY,
            font=("Helvetica", 12),
        )


def run_player_gui(config: SnakeConfig | None = None) -> None:
    """Launch the Snake player interface."""
    config = config or load_config()
    configure_logging(config.log_level)
    root = tk.Tk()
    SnakeApp(root, config)
    root.mainloop()


if __name__ == "__main__":
    run_player_gui()
