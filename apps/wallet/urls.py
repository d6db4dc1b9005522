from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'wallet'

router = DefaultRouter()
router.register(r'shares', views.ShareTransferViewSet, basename='share')
router.register(r'console/shares', views.ConsoleShareTransferViewSet, basename='console-share')

urlpatterns = [
    # GET    /api/wallet/                           - Balance summary
    # GET    /api/wallet/transactions/              - Transaction history
    # GET    /api/wallet/lookup/?phone=             - Find user by phone
    # POST   /api/wallet/send/                      - Direct transfer
    # POST   /api/wallet/iap/                       - In-app purchase
    # POST   /api/wallet/iap/restore/               - Restore store purchases
    path('', views.wallet_summary, name='summary'),
    path('transactions/', views.transaction_history, name='transactions'),
    path('lookup/', views.lookup_account, name='lookup'),
    path('send/', views.send_credits_view, name='send'),
    path('iap/', views.iap_purchase, name='iap'),
    path('iap/restore/', views.restore_purchases, name='iap-restore'),

    # Staff console
    # POST   /api/wallet/console/redeem/                  - Redeem a share code
    # POST   /api/wallet/console/expire/                  - Expiry sweep
    # POST   /api/wallet/console/accounts/{id}/adjust/    - Balance adjustment
    # GET    /api/wallet/console/accounts/{id}/ledger/    - Ledger check
    path('console/redeem/', views.redeem_share_code, name='console-redeem'),
    path('console/expire/', views.expire_shares, name='console-expire'),
    path('console/accounts/<uuid:account_id>/adjust/', views.adjust_account_balance, name='console-adjust'),
    path('console/accounts/<uuid:account_id>/ledger/', views.account_ledger, name='console-ledger'),

    # GET|POST /api/wallet/shares/                  - Own shares / share via SMS
    # GET      /api/wallet/shares/{id}/             - Share details
    # POST     /api/wallet/shares/{id}/cancel/      - Cancel
    # GET      /api/wallet/shares/{id}/qr_code/     - QR PNG
    # GET      /api/wallet/console/shares/          - Staff listing
    # POST     /api/wallet/console/shares/{id}/cancel/
    path('', include(router.urls)),
]
