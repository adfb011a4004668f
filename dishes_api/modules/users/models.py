# Supabase tables: profiles, dishes and their child tables, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (not null) - synced from auth.users
- full_name: text (nullable)
- profile_tag: text (unique handle, nullable)
- avatar_url: text (nullable) - public URL of an object in the avatars bucket
- role: text ('user' | 'admin', default 'user')
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

dishes: id, user_id -> profiles.id, title, description, servings,
        status ('draft' | 'pending' | 'approved' | 'rejected'),
        rejection_reason, main_image, created_at, updated_at
dish_ingredients / dish_steps / dish_categories: dish_id -> dishes.id
categories: id, name (joined through dish_categories.category_id)
dish_ratings: user_id, dish_id, rating (1 = like)
comments: user_id, dish_id, content
collections: id, user_id
collection_dishes: collection_id -> collections.id, dish_id

No ON DELETE CASCADE is assumed anywhere: removing a profile means removing
its dependent rows first (see AdminService.delete_user_by_admin).

Note: Authentication data (password, tokens) is stored in auth.users table
managed by Supabase Auth. The profiles table only stores profile information.
"""


class Tables:
    PROFILES = "profiles"
    DISHES = "dishes"
    DISH_INGREDIENTS = "dish_ingredients"
    DISH_STEPS = "dish_steps"
    DISH_CATEGORIES = "dish_categories"
    CATEGORIES = "categories"
    RATINGS = "dish_ratings"
    COMMENTS = "comments"
    COLLECTIONS = "collections"
    COLLECTION_DISHES = "collection_dishes"


PUBLIC_PROFILE_COLUMNS = "id, full_name, avatar_url, created_at"
TAG_LOOKUP_COLUMNS = "id, email, full_name, profile_tag, avatar_url, created_at"
