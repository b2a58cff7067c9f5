"""Curses view for the interactive selector."""
from __future__ import annotations

import curses
from typing import Dict

from .selector import SelectorAction, SelectorMode, SelectorModel

HELP_TEXT = "arrows: move  space: toggle  s: scope  enter: apply  q/esc: cancel"
CELL_MIN_WIDTH = 24

KEY_BINDINGS: Dict[int, SelectorAction] = {
    curses.KEY_UP: SelectorAction.UP,
    curses.KEY_DOWN: SelectorAction.DOWN,
    curses.KEY_LEFT: SelectorAction.LEFT,
    curses.KEY_RIGHT: SelectorAction.RIGHT,
    ord(" "): SelectorAction.TOGGLE,
    ord("s"): SelectorAction.TOGGLE_SCOPE,
    ord("S"): SelectorAction.TOGGLE_SCOPE,
    ord("\n"): SelectorAction.COMMIT,
    ord("\r"): SelectorAction.COMMIT,
    curses.KEY_ENTER: SelectorAction.COMMIT,
    ord("q"): SelectorAction.CANCEL,
    ord("Q"): SelectorAction.CANCEL,
    27: SelectorAction.CANCEL,  # ESC
}


def action_for_key(key: int):
    """Map a curses key code to a selector action, or None."""
    return KEY_BINDINGS.get(key)


class SelectorView:
    """Draws a ``SelectorModel`` and feeds it key presses until it finishes."""

    def __init__(self, model: SelectorModel):
        self.model = model

    def run(self, stdscr) -> SelectorMode:
        """Main loop; returns the terminal mode."""
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        if curses.has_colors():
            curses.start_color()
            curses.init_pair(1, curses.COLOR_BLACK, curses.COLOR_WHITE)   # Focused
            curses.init_pair(2, curses.COLOR_GREEN, curses.COLOR_BLACK)   # Desired
            curses.init_pair(3, curses.COLOR_YELLOW, curses.COLOR_BLACK)  # Help

        while self.model.mode is SelectorMode.BROWSING:
            stdscr.erase()
            height, width = stdscr.getmaxyx()
            self._draw_header(stdscr, width)
            self._draw_grid(stdscr, height, width)
            self._draw_help(stdscr, height, width)
            stdscr.refresh()

            action = action_for_key(stdscr.getch())
            if action is not None:
                self.model.dispatch(action)
        return self.model.mode

    def _draw_header(self, stdscr, width):
        title = f"Select modules to keep installed  [scope: {self.model.scope.value}]"
        try:
            stdscr.addstr(0, 2, title[:max(0, width - 4)], curses.A_BOLD)
        except curses.error:
            pass

    def _draw_grid(self, stdscr, height, width):
        cell_width = max(CELL_MIN_WIDTH, (width - 4) // self.model.columns)
        for index, descriptor in enumerate(self.model.entries):
            row, col = self.model.position(index)
            y = 2 + row
            x = 2 + col * cell_width
            if y >= height - 2:
                break
            desired = self.model.selection.is_desired(descriptor.name)
            label = f"[{'x' if desired else ' '}] {descriptor.name}"[:cell_width - 1]
            if index == self.model.focus:
                attr = curses.color_pair(1) | curses.A_BOLD
            elif desired:
                attr = curses.color_pair(2)
            else:
                attr = curses.A_NORMAL
            try:
                stdscr.addstr(y, x, label, attr)
            except curses.error:
                pass

        focused = self.model.focused
        if focused is not None:
            try:
                stdscr.addstr(height - 2, 2, focused.description[:max(0, width - 4)], curses.A_DIM)
            except curses.error:
                pass

    def _draw_help(self, stdscr, height, width):
        try:
            stdscr.addstr(height - 1, 2, HELP_TEXT[:max(0, width - 4)], curses.color_pair(3))
        except curses.error:
            pass


def run_curses(model: SelectorModel) -> SelectorMode:
    """Run the curses view for ``model`` and restore the terminal afterwards."""
    return curses.wrapper(SelectorView(model).run)
