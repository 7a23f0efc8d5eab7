"""Church directory membership backend: Cloud Functions over Firestore and Firebase Auth."""
