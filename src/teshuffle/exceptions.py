"""Exception hierarchy for teshuffle."""


class TEShuffleError(Exception):
    """Base class for all teshuffle errors."""


class ConfigurationError(TEShuffleError):
    """Missing or malformed inputs, detected before any output is written."""


class CollaboratorError(TEShuffleError):
    """An external collaborator (bedtools, binomial test) failed or returned bad output.

    Always fatal: a bootstrap run that is silently dropped would corrupt the
    trial count of the null distribution.
    """
