# External imports
import logging
from typing import List

# Internal imports
from moldepict.fragment import Fragment, merge_fragments


logger = logging.getLogger(__name__)


def _display_size(f: Fragment) -> float:
    return f.width() + f.height()


def arrange_all_fragments(fragments: List[Fragment]) -> None:
    """Pack disconnected fragments into one, the two largest at a time.

    The list is modified in place and ends up with at most one fragment.
    """
    while len(fragments) > 1:
        f0, f1 = fragments[0], fragments[1]
        s0, s1 = _display_size(f0), _display_size(f1)
        if s0 > s1:
            large, large_size, second, second_size = f0, s0, f1, s1
        else:
            large, large_size, second, second_size = f1, s1, f0, s0

        for fn in fragments[2:]:
            sn = _display_size(fn)
            if large_size < sn:
                second, second_size = large, large_size
                large, large_size = fn, sn
            elif second_size < sn:
                second, second_size = fn, sn

        large.arrange_with(second)
        fragments.append(merge_fragments(large, second))
        fragments.remove(large)
        fragments.remove(second)

    logger.debug("Arranged into %d fragment(s)", len(fragments))
