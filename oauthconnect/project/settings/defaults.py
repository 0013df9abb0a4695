# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Default settings for OAuthConnect.

Secrets are read from the environment. Resource owners are configured in
CONNECT_RESOURCE_OWNERS, by instantiating classes from
:py:mod:`oauthconnect.server.connect.providers`.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

SECRET_KEY = os.environ.get("OAUTHCONNECT_SECRET_KEY", "")

DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]"]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'oauthconnect.server.connect.apps.ConnectConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

AUTHENTICATION_BACKENDS = [
    'django.contrib.auth.backends.ModelBackend',
    'oauthconnect.server.connect.auth.ConnectAuthBackend',
]

ROOT_URLCONF = 'oauthconnect.project.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get(
            "OAUTHCONNECT_DATABASE", str(BASE_DIR / "oauthconnect.sqlite3")
        ),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

LOGIN_URL = 'connect:login'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'oauthconnect': {
            'handlers': ['console'],
            'level': os.environ.get("OAUTHCONNECT_LOG_LEVEL", "INFO"),
        },
    },
}

# Connect flows
CONNECT_ENABLED = False
CONNECT_FIREWALL_NAME = "main"
CONNECT_REGISTRATION_TIMEOUT = 300
CONNECT_DEFAULT_REDIRECT = "/"
CONNECT_ACCOUNT_CONNECTOR = (
    "oauthconnect.server.connect.connector.ModelAccountConnector"
)
CONNECT_REGISTRATION_FORM_HANDLER = (
    "oauthconnect.server.connect.forms.RegistrationFormHandler"
)
CONNECT_RESOURCE_OWNERS: dict[str, list[object]] = {CONNECT_FIREWALL_NAME: []}
