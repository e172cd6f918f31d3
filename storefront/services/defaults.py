"""
Built-in menu used to seed an empty local store, so the storefront has
something to show the first time it starts without the remote store.
These records never reach the remote store unless an admin edits them.
"""

DEFAULT_CATEGORIES = [
    {"id": "osh", "name": "Osh", "color": "yellow"},
    {"id": "salads", "name": "Salads", "color": "green"},
    {"id": "drinks", "name": "Drinks", "color": "blue"},
]

DEFAULT_MENU_ITEMS = [
    {
        "id": "default-wedding-osh",
        "name": "Wedding Osh",
        "description": "Rice pilaf with beef, yellow carrots and chickpeas",
        "price": 35000,
        "category": "osh",
        "image": "/placeholder.svg?height=200&width=300",
        "isAvailable": True,
        "preparationTime": 20,
        "rating": 0,
        "variants": [
            {"id": "default-wedding-osh-half", "name": "Half portion", "price": 20000, "isAvailable": True},
        ],
    },
    {
        "id": "default-achichuk",
        "name": "Achichuk",
        "description": "Tomato and onion salad",
        "price": 8000,
        "category": "salads",
        "image": "/placeholder.svg?height=200&width=300",
        "isAvailable": True,
        "preparationTime": 5,
        "rating": 0,
    },
    {
        "id": "default-green-tea",
        "name": "Green tea",
        "description": "A pot of green tea",
        "price": 5000,
        "category": "drinks",
        "image": "/placeholder.svg?height=200&width=300",
        "isAvailable": True,
        "preparationTime": 3,
        "rating": 0,
    },
]
