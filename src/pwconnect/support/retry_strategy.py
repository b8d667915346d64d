from pwconnect.support.mixins import CommonEqualityMixin

# the growth factor applied to the delay after each failed attempt
BACKOFF_MULTIPLIER = 1.5


class BackoffRetryStrategy(CommonEqualityMixin):
    """
    Exponential backoff. The first delay is `initial_delay` and each subsequent
    delay is the previous one multiplied by `multiplier`.

    >>> list(BackoffRetryStrategy(2, 1.5).delays(4))
    [2, 3.0, 4.5, 6.75]
    """

    def __init__(self, initial_delay, multiplier=BACKOFF_MULTIPLIER):
        """
        :param initial_delay: The first delay in seconds.
        :param multiplier: The factor applied to the delay after each attempt. Must be at least 1
            so the delays never decrease.
        """
        if multiplier < 1:
            raise ValueError("backoff multiplier must be at least 1, was %s" % multiplier)
        self.initial_delay = initial_delay
        self.multiplier = multiplier

    def delays(self, attempts):
        """
        The delays to use for the given number of attempts.
        :param attempts: the maximum number of attempts.
        :return: an iterator of `attempts` delays, one per attempt. The delay for an attempt is
            both its timeout and the time waited after it fails.
        """
        delay = self.initial_delay
        for _ in range(attempts):
            yield delay
            delay = delay * self.multiplier
