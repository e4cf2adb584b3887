"""
Monthly series regressors.

Modules
-------
regressor : ``Regressor`` protocol, ``FeedForwardRegressor`` (numpy MLP,
            default), ``LeastSquaresRegressor`` (closed-form line) and
            ``make_regressor()`` which picks one from ``ModelConfig.kind``.
"""
