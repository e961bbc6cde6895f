SECRET_KEY = "not-so-secret"
INSTALLED_APPS = ["csp_evaluator"]
USE_I18N = True
LANGUAGE_CODE = "en-us"
CSP_EVALUATOR_VERSION = 3
