# shellpane_views.py
# Example local views: run with `shellpane run "Disk usage" --file shellpane_views.py`
from __future__ import annotations
from shellpane.dsl import views, view, step, inp

VIEWS = views(
    # Single command, runs as soon as the view is mounted
    view(
        "Disk usage",
        step("df", "df -h"),
        category="system",
        auto=True,
    ),

    # Step 1 collects a directory; step 2 reuses it without asking again
    view(
        "Largest files",
        step("list directory", 'ls -la "$dir"', inp("dir", "directory to inspect"), slug="list-dir"),
        step("top 10 by size", 'du -ah "$dir" 2>/dev/null | sort -rh | head -n 10', inp("dir"), slug="top-files"),
        category="system",
    ),

    # View-level input collected once per pass, then two chained steps
    view(
        "Greeting",
        step("hello", 'echo "hello $name"'),
        step("shout", 'echo "HELLO $name" | tr a-z A-Z'),
        inputs=[inp("name")],
        category="demo",
    ),
)
