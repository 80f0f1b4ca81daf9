"""Interactive browser for one matched process snapshot."""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Tree
from textual.widgets.tree import TreeNode

from pypst.config import Config
from pypst.matcher import MatchAnnotation
from pypst.models import ProcessRecord
from pypst.render import format_process, format_thread


class ProcessTree(Tree[int]):
    """Tree widget holding the included branches of a forest."""

    def __init__(
        self,
        forest: list[ProcessRecord],
        annotation: MatchAnnotation,
        cfg: Config,
        *args,
        **kwargs,
    ) -> None:
        """Build the tree from the included processes of ``forest``."""
        super().__init__("processes", *args, **kwargs)
        self.show_root = False
        self._cfg = cfg
        self._annotation = annotation
        self._add_forest(forest)
        self.root.expand()

    def _add_forest(self, forest: list[ProcessRecord]) -> None:
        """Add the included processes under the hidden root, depth first."""
        added: list[TreeNode[int]] = []
        stack = [(self.root, p, False) for p in reversed(forest)]
        while stack:
            parent, p, forced = stack.pop()
            forced = self._annotation.matched_directly(p) or forced
            if not self._annotation.is_included(p, forced):
                continue

            # Expanded along the path down to each direct match; plain Text so
            # brackets in command lines are not read as markup
            node = parent.add(
                Text(format_process(p, self._cfg)),
                data=p.id,
                expand=self._annotation.matched_by_descendant(p),
            )
            if self._cfg.show_threads:
                for t in p.threads:
                    node.add_leaf(Text(format_thread(t)))

            added.append(node)
            stack.extend((node, c, forced) for c in reversed(p.children))

        for node in added:
            if not node.children:
                node.allow_expand = False


class PstApp(App):
    """Browse the matched process tree."""

    TITLE = "pypst"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
    ]

    def __init__(
        self,
        forest: list[ProcessRecord],
        annotation: MatchAnnotation,
        cfg: Config,
        pattern: str = "",
    ) -> None:
        """Initialize the app with an already annotated snapshot."""
        super().__init__()
        self.sub_title = f"pattern: {pattern}"
        self._forest = forest
        self._annotation = annotation
        self._cfg = cfg

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        yield ProcessTree(self._forest, self._annotation, self._cfg, id="process-tree")
        yield Footer()

    def action_expand_all(self) -> None:
        """Expand every node of the tree."""
        self.query_one(ProcessTree).root.expand_all()

    def action_collapse_all(self) -> None:
        """Collapse every node below the top level."""
        tree = self.query_one(ProcessTree)
        tree.root.collapse_all()
        # Keep the top level visible since the root itself is hidden
        tree.root.expand()
