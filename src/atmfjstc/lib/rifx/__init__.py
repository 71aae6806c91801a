"""
Parser for RIFX files, the big-endian variant of the RIFF chunk container format.

A RIFX file consists of a ``RIFX`` signature and a size, followed by a list of chunks ("blocks"). Each block has a
4-byte type tag and a 32-bit size, and blocks of type ``LIST`` contain further lists of blocks. This package decodes
such a file into an immutable tree of `Block` and `BlockList` objects::

    root = parse_rifx_file('path/to/file')

    for block in root:
        print(block.type_text, block.size)

and offers a few functions for querying the tree, e.g.::

    header = root.find_type('head').to_struct('HHI')
    entries = root.sublist_merge('entr')

The interpretation of the block payloads is left to the caller, who can use the accessors on `Block` (`to_text`,
`to_struct`, `to_uint32` etc.) for the purpose.

Data that is not in RIFX format is rejected with a `FormatError`, and data that ends prematurely causes a
`TruncatedInputError`. Blocks whose declared size does not fit in their enclosing list are salvaged as ``ANON``
blocks rather than aborting the parse; see `atmfjstc.lib.rifx.decode` for details.

A simple command line tool that shows the structure of a RIFX file is available as ``rifx-dump`` (or
``python -m atmfjstc.lib.rifx.dump``).
"""

from os import PathLike
from typing import Union, Optional

from atmfjstc.lib.rifx.decode import parse_rifx, DecoderOptions
from atmfjstc.lib.rifx.model import Block, BlockList
from atmfjstc.lib.rifx.errors import RIFXError, FormatError, TruncatedInputError, MalformedBlockError, \
    NotFoundError, DecodeError


__version__ = '1.0.0'


def parse_rifx_file(path: Union[str, PathLike], options: Optional[DecoderOptions] = None) -> BlockList:
    """
    Convenience function for parsing a RIFX file given its path. See `parse_rifx` for details.
    """
    with open(path, 'rb') as f:
        return parse_rifx(f, options)
