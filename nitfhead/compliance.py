__classification__ = "UNCLASSIFIED"
__author__ = "nitfhead contributors"


class NitfHeadError(Exception):
    """A custom exception class from which all nitfhead errors derive."""


def bytes_to_string(bytes_in, encoding='utf-8'):
    """
    Ensure that the input bytes is mapped to a string.

    Parameters
    ----------
    bytes_in : bytes|memoryview|str
    encoding : str
        The encoding to apply, if necessary.

    Returns
    -------
    str
    """

    if isinstance(bytes_in, str):
        return bytes_in

    if isinstance(bytes_in, memoryview):
        bytes_in = bytes_in.tobytes()

    if not isinstance(bytes_in, bytes):
        raise TypeError('Input is required to be bytes. Got type {}'.format(type(bytes_in)))

    return bytes_in.decode(encoding)
