"""User-facing strings for the Parapluie onboarding flow."""

from typing import Any

UI_STRINGS: dict[str, dict[str, str]] = {
    "fr": {
        # Validation
        "name_too_short": "Entrez au moins 2 caractères",
        "name_too_long": "Le nom est trop long (max 50 caractères)",
        "phone_invalid": "Entrez un numéro de téléphone valide (10 chiffres)",
        "email_invalid": "Adresse courriel invalide",
        "email_taken": "Cet email est déjà utilisé",
        "password_weak": "Le mot de passe doit respecter tous les critères",
        "password_mismatch": "Les mots de passe ne correspondent pas",
        "relationship_missing": "Sélectionnez une relation",
        "share_phone_missing": "Entrez un numéro de téléphone",
        "share_email_missing": "Entrez une adresse email",
        # Password strength labels
        "strength_0": "Très faible",
        "strength_1": "Faible",
        "strength_2": "Moyen",
        "strength_3": "Bon",
        "strength_4": "Fort",
        # Skip confirmations
        "skip_welcome_title": "Êtes-vous sûr?",
        "skip_welcome_message": "Votre nom et numéro aident Walter à mieux vous protéger.",
        "skip_permissions_title": "Continuer sans protection?",
        "skip_permissions_message": "Sans ces autorisations, Walter ne pourra pas filtrer les appels et messages suspects.",
        "skip_contact_title": "Êtes-vous sûr?",
        "skip_contact_message": "Une personne de confiance peut vous aider en cas d'arnaque.",
        "skip_confirm": "Passer",
        "skip_cancel": "Revenir",
        "permissions_retry": "Réessayer",
        "permissions_continue": "Continuer sans protection",
        # Errors
        "error_title": "Erreur",
        "signup_failed": "Une erreur est survenue. Réessayez.",
        "profile_failed": "Erreur lors de la création du profil. Veuillez réessayer.",
        "oauth_failed": "Erreur lors de la connexion. Réessayez.",
        "google_failed": "Impossible de se connecter avec Google. Réessayez ou utilisez votre email.",
        "apple_unavailable": "La connexion avec Apple sera disponible prochainement. Utilisez Google ou votre email pour le moment.",
        "invitation_failed": "Erreur lors de la création de l'invitation",
        "invitation_unknown": "Code d'invitation invalide",
        "invitation_expired": "Ce code d'invitation a expiré",
        "permissions_denied": "Certaines autorisations ont été refusées.",
        "generic_error": "Une erreur est survenue. Réessayez.",
        # Sharing
        "share_sms_body": (
            "Bonjour!\n\n"
            "J'utilise Parapluie pour me protéger des arnaques. Pouvez-vous m'aider "
            "en tant que personne de confiance?\n\n"
            "Code d'invitation: {code}\n"
            "Valide pendant {hours} heures\n\n"
            "Téléchargez l'app: {app_url}\n\n"
            "Merci!"
        ),
        "share_email_subject": "Invitation Parapluie",
        "share_email_body": (
            "Bonjour!\n\n"
            "J'utilise Parapluie pour me protéger des arnaques téléphoniques et des "
            "messages suspects. Pouvez-vous m'aider en tant que personne de confiance?\n\n"
            "Code d'invitation: {code}\n"
            "Valide pendant {hours} heures\n\n"
            "Pour accepter l'invitation:\n"
            "1. Téléchargez l'application Parapluie: {app_url}\n"
            "2. Entrez le code ci-dessus\n\n"
            "Merci de votre aide!"
        ),
        "placeholder_name": "Utilisateur",
    },
    "en": {
        "name_too_short": "Enter at least 2 characters",
        "name_too_long": "Name is too long (max 50 characters)",
        "phone_invalid": "Enter a valid phone number (10 digits)",
        "email_invalid": "Invalid email address",
        "email_taken": "This email is already in use",
        "password_weak": "The password must meet every criterion",
        "password_mismatch": "Passwords do not match",
        "relationship_missing": "Select a relationship",
        "share_phone_missing": "Enter a phone number",
        "share_email_missing": "Enter an email address",
        "strength_0": "Very weak",
        "strength_1": "Weak",
        "strength_2": "Fair",
        "strength_3": "Good",
        "strength_4": "Strong",
        "skip_welcome_title": "Are you sure?",
        "skip_welcome_message": "Your name and number help Walter protect you better.",
        "skip_permissions_title": "Continue without protection?",
        "skip_permissions_message": "Without these permissions Walter cannot filter suspicious calls and messages.",
        "skip_contact_title": "Are you sure?",
        "skip_contact_message": "A trusted contact can help you when a scam happens.",
        "skip_confirm": "Skip",
        "skip_cancel": "Go back",
        "permissions_retry": "Retry",
        "permissions_continue": "Continue without protection",
        "error_title": "Error",
        "signup_failed": "Something went wrong. Try again.",
        "profile_failed": "Could not create your profile. Please try again.",
        "oauth_failed": "Sign-in failed. Try again.",
        "google_failed": "Could not sign in with Google. Try again or use your email.",
        "apple_unavailable": "Sign in with Apple is coming soon. Use Google or your email for now.",
        "invitation_failed": "Could not create the invitation",
        "invitation_unknown": "Invalid invitation code",
        "invitation_expired": "This invitation code has expired",
        "permissions_denied": "Some permissions were denied.",
        "generic_error": "Something went wrong. Try again.",
        "share_sms_body": (
            "Hello!\n\n"
            "I use Parapluie to protect myself from scams. Could you help me as a "
            "trusted contact?\n\n"
            "Invitation code: {code}\n"
            "Valid for {hours} hours\n\n"
            "Download the app: {app_url}\n\n"
            "Thank you!"
        ),
        "share_email_subject": "Parapluie invitation",
        "share_email_body": (
            "Hello!\n\n"
            "I use Parapluie to protect myself from phone scams and suspicious "
            "messages. Could you help me as a trusted contact?\n\n"
            "Invitation code: {code}\n"
            "Valid for {hours} hours\n\n"
            "To accept the invitation:\n"
            "1. Download the Parapluie app: {app_url}\n"
            "2. Enter the code above\n\n"
            "Thank you for your help!"
        ),
        "placeholder_name": "User",
    },
}

DEFAULT_LANGUAGE = "fr"


def get_string(key: str, language: str | None = None, **kwargs: Any) -> str:
    """Get a UI string in the given language with optional formatting."""
    table = UI_STRINGS.get(language or DEFAULT_LANGUAGE, UI_STRINGS[DEFAULT_LANGUAGE])
    template = table.get(key) or UI_STRINGS[DEFAULT_LANGUAGE].get(key, key)
    return template.format(**kwargs)
