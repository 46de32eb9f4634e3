VERSION = (1, 0, 0)
__version__ = ".".join(map(str, VERSION))


def get_batch_submitter(alias="default"):
    """Helper used for obtaining a configured batch submitter."""
    from django_batchex.handler import submitters

    return submitters[alias]
