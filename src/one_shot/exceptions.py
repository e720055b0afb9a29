class ProtocolViolation(BaseException):
    """A completer or continuation was used against its one-shot contract.

    Raised for bugs in calling code: completing twice, polling after the result
    was taken, attaching values too late. Not meant to be caught and recovered
    from, hence BaseException.
    """
