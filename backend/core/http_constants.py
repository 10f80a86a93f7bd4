"""Constantes HTTP pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP utilisés par la passerelle d'autorisation et les routes,
ainsi que les limites par défaut des listes renvoyées par le stockage.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_PAYMENT_REQUIRED = 402
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_INTERNAL_SERVER_ERROR = 500

# Limites par défaut des listes
DEFAULT_SIGNAL_LIMIT = 100
DEFAULT_TRADE_LIMIT = 100
DEFAULT_ADMIN_LOG_LIMIT = 100
DEFAULT_OHLC_LIMIT = 1000
