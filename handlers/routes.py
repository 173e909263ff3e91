"""Routing table for the API function."""

from handlers import cards, profile, settings, views
from utils.routing import Router

router = Router()

router.add("GET", "/cards", cards.list_cards)
router.add("POST", "/cards", cards.create_card)
router.add("PUT", "/cards/{cardId}", cards.update_card)
router.add("DELETE", "/cards/{cardId}", cards.delete_card)

router.add("GET", "/settings/stages", settings.get_stages)
router.add("PUT", "/settings/stages", settings.put_stages)

router.add("GET", "/profile", profile.get_profile)
router.add("PUT", "/profile", profile.put_profile)

router.add("GET", "/stats", views.get_stats)
router.add("GET", "/reminders", views.get_reminders)
