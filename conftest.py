import pytest

import polroute.helpers


@pytest.fixture(autouse=True)
def quiet_helpers():
    # cmdline.main() sets the module level verbosity
    verbose, logprefix = polroute.helpers.verbose, polroute.helpers.logprefix
    yield
    polroute.helpers.verbose = verbose
    polroute.helpers.logprefix = logprefix
