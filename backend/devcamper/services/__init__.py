"""
DevCamper Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Each service is a stateless singleton; the request's AsyncSession is
       passed into every call, so one request is one transaction.

Service Inventory:
    - query_builder:     list filtering, sorting, selection and pagination
    - AuthService:       register, login, password reset, self-service updates
    - UserService:       admin CRUD over identities
    - BootcampService:   bootcamp CRUD, radius search, photo upload
    - CourseService:     course CRUD + average_cost
    - ReviewService:     review CRUD + average_rating
    - GeocoderService:   address → coordinates (retry + circuit breaker)
    - MailService:       SMTP delivery of reset emails
    - FileService:       photo validation and storage
"""
