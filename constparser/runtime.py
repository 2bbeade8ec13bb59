import sys
from typing import Callable, Dict, Optional, TextIO, Tuple

"""Define the platform output handlers here"""
def createRuntimeStd(out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> Dict[Tuple[str, str], Callable[[str], None]]:
  def _out():
    return out if out is not None else sys.stdout

  def _err():
    return err if err is not None else sys.stderr

  return {
    ('std', 'println'):  lambda s: print(s, file=_out()),
    ('diag', 'report'):  lambda s: print(s, file=_err()),
    ('diag', 'trace'):   lambda s: print(s, file=_err()),
  }
