"""
Translated, human-readable messages (fr/en).

Errors carry a stable message key; the text shown to the end user is
resolved here in the request language.
"""
from typing import Optional

SUPPORTED_LANGUAGES = ('fr', 'en')

MESSAGES = {
    'error.internal': {
        'fr': "Une erreur interne est survenue.",
        'en': "An internal error occurred.",
    },
    'error.not_found': {
        'fr': "Ressource introuvable.",
        'en': "Resource not found.",
    },
    'error.unauthorized': {
        'fr': "Accès non autorisé.",
        'en': "Unauthorized access.",
    },
    'error.login_required': {
        'fr': "Vous devez être connecté.",
        'en': "You must be logged in.",
    },
    'validation.invalid_input': {
        'fr': "Données invalides : {detail}",
        'en': "Invalid input: {detail}",
    },
    'validation.below_minimum': {
        'fr': "Quantité minimale de commande : {minimum}.",
        'en': "Minimum order quantity is {minimum}.",
    },
    'validation.product_inactive': {
        'fr': "Le produit « {name} » n'est plus disponible.",
        'en': 'Product "{name}" is no longer available.',
    },
    'validation.variant_mismatch': {
        'fr': "Cette déclinaison n'appartient pas au produit.",
        'en': "This variant does not belong to the product.",
    },
    'validation.line_not_found': {
        'fr': "Ligne de panier introuvable.",
        'en': "Cart line not found.",
    },
    'validation.empty_cart': {
        'fr': "Votre panier est vide.",
        'en': "Your cart is empty.",
    },
    'validation.cart_full': {
        'fr': "Votre panier est limité à {limit} produits différents.",
        'en': "Your cart is limited to {limit} different products.",
    },
    'validation.progress_range': {
        'fr': "La progression doit être comprise entre 0 et 100.",
        'en': "Progress must be between 0 and 100.",
    },
    'validation.progress_status': {
        'fr': "La progression ne peut être modifiée qu'en production.",
        'en': "Progress can only be set while the order is in production.",
    },
    'validation.unknown_status': {
        'fr': "Statut inconnu : {status}.",
        'en': "Unknown status: {status}.",
    },
    'validation.negative_stock': {
        'fr': "Les quantités de stock ne peuvent pas être négatives.",
        'en': "Stock quantities cannot be negative.",
    },
    'discount.invalid_code': {
        'fr': "Code invalide ou expiré",
        'en': "Invalid or expired code",
    },
    'discount.no_discount': {
        'fr': "Ce code n'offre pas de réduction",
        'en': "This code offers no discount",
    },
    'discount.not_applicable': {
        'fr': "Ce code ne s'applique pas aux articles de votre panier",
        'en': "This code does not apply to items in your cart",
    },
    'order.allocation_failed': {
        'fr': "Impossible d'attribuer un numéro de commande. Veuillez réessayer.",
        'en': "Could not allocate an order number. Please try again.",
    },
    'order.submission_failed': {
        'fr': "Erreur lors de la commande : rien n'a été enregistré.",
        'en': "Error placing order: nothing was saved.",
    },
    'order.partial_submission': {
        'fr': "La commande {order_number} a été créée sans ses articles. Notre équipe a été prévenue.",
        'en': "Order {order_number} was created without its items. Our team has been notified.",
    },
    'order.invalid_transition': {
        'fr': "Transition de statut impossible : {current} → {target}.",
        'en': "Cannot move order from {current} to {target}.",
    },
}


def normalize_language(language: Optional[str], default: str = 'fr') -> str:
    """Reduce an Accept-Language style value ('en-GB,en;q=0.9') to 'fr' or 'en'."""
    if not language:
        return default
    primary = language.split(',')[0].split(';')[0].strip().lower()[:2]
    return primary if primary in SUPPORTED_LANGUAGES else default


def translate(key: str, language: Optional[str] = None, **params) -> str:
    """Resolve a message key in the given language, formatting params into it."""
    lang = normalize_language(language, default=_default_language())
    entry = MESSAGES.get(key)
    if entry is None:
        return key
    template = entry.get(lang) or entry['en']
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template


def current_language() -> str:
    """Language of the current request: session 'lang', then Accept-Language."""
    from flask import has_request_context, request, session

    default = _default_language()
    if not has_request_context():
        return default
    if session.get('lang'):
        return normalize_language(session['lang'], default)
    return normalize_language(request.headers.get('Accept-Language'), default)


def _default_language() -> str:
    from flask import current_app, has_app_context

    if has_app_context():
        return current_app.config.get('DEFAULT_LANGUAGE', 'fr')
    return 'fr'
