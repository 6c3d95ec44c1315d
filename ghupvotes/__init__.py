"""ghupvotes - upvote scores for GitHub Project items.

Totals the reactions, comments and linked activity of every open issue and
pull request on a GitHub project and stores the total in a number field.
"""

from ghupvotes._version import __version__

__all__ = ["__version__"]
