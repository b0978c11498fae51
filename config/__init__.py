# config package - authoritative source for all service configuration.
#
# Sub-modules:
#   api_config.py    - API endpoint, authentication, model identifiers
#   model_params.py  - completion parameters, retry budgets, validation limits
